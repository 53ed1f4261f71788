import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse, Response

from ..config import PROXY_ALLOWED_PREFIXES, PROXY_MAX_BYTES, HTTP_TIMEOUT
from ..exceptions import InvalidInput
from ..services.images import BROWSER_USER_AGENT, SOURCE_REFERER

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/proxy",
    tags=["Proxy"]
)

def get_http_client():
    client = httpx.Client(timeout=HTTP_TIMEOUT)
    try:
        yield client
    finally:
        client.close()

def is_allowed(url: str, prefixes: List[str] = PROXY_ALLOWED_PREFIXES) -> bool:
    return any(url.startswith(prefix) for prefix in prefixes)

@router.get("")
def proxy_image(url: Optional[str] = None, client: httpx.Client = Depends(get_http_client)):
    """Serve a Jotform CDN image with a spoofed referrer to get past hotlink protection."""
    if not url:
        raise InvalidInput("Missing ?url= parameter")
    if not is_allowed(url):
        raise HTTPException(status_code=403, detail="Forbidden: only Jotform URLs are allowed")

    try:
        with client.stream(
            "GET",
            url,
            headers={"Referer": SOURCE_REFERER, "User-Agent": BROWSER_USER_AGENT},
            follow_redirects=True
        ) as upstream:
            if upstream.is_error:
                return JSONResponse(
                    status_code=upstream.status_code,
                    content={"error": f"Upstream error: {upstream.status_code}"}
                )

            # Responses above the platform payload limit are served by the CDN directly
            declared = upstream.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > PROXY_MAX_BYTES:
                return RedirectResponse(url, status_code=302)

            body = bytearray()
            for chunk in upstream.iter_bytes():
                body.extend(chunk)
                if len(body) > PROXY_MAX_BYTES:
                    return RedirectResponse(url, status_code=302)

            content_type = upstream.headers.get("content-type", "image/jpeg")
    except httpx.HTTPError as e:
        logger.error(f"Proxy error for {url}: {e}")
        return JSONResponse(status_code=502, content={"error": str(e)})

    return Response(
        content=bytes(body),
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=86400"}
    )
