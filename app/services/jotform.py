import logging
from typing import List, Optional
from urllib.parse import urlparse, urlencode, parse_qsl, urlunparse

import httpx
from pydantic import ValidationError

from ..config import JOTFORM_API_KEY, JOTFORM_FORM_ID, JOTFORM_BASE_URL, JOTFORM_PAGE_SIZE, HTTP_TIMEOUT
from ..exceptions import SourceUnavailable
from ..models.submission import UpstreamSubmission

logger = logging.getLogger(__name__)


def with_api_key(url: str, api_key: Optional[str]) -> str:
    """Append the Jotform apiKey query parameter, keeping any existing query."""
    if not api_key:
        return url
    parsed = urlparse(url)
    query = parse_qsl(parsed.query, keep_blank_values=True)
    query.append(("apiKey", api_key))
    return urlunparse(parsed._replace(query=urlencode(query)))


class SubmissionSource:
    """Read-only view of the form submissions held by Jotform."""

    def __init__(
        self,
        api_key: Optional[str] = JOTFORM_API_KEY,
        form_id: str = JOTFORM_FORM_ID,
        base_url: str = JOTFORM_BASE_URL,
        page_size: int = JOTFORM_PAGE_SIZE,
        client: Optional[httpx.Client] = None
    ):
        self.api_key = api_key
        self.form_id = form_id
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT)

    def _fetch_page(self, offset: int) -> List[dict]:
        try:
            response = self.client.get(
                f"{self.base_url}/form/{self.form_id}/submissions",
                params={
                    "apiKey": self.api_key or "",
                    "limit": self.page_size,
                    "offset": offset,
                    "orderby": "created_at"
                }
            )
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Jotform API error: {e}")

        if response.is_error:
            raise SourceUnavailable(f"Jotform API error: {response.status_code}")

        try:
            content = response.json().get("content") or []
        except (ValueError, AttributeError):
            raise SourceUnavailable("Jotform API returned an unexpected payload")
        return content

    def fetch_submissions(self) -> List[UpstreamSubmission]:
        """Return every submission of the form, whatever its status."""
        submissions = []
        offset = 0
        while True:
            page = self._fetch_page(offset)
            for item in page:
                try:
                    submissions.append(UpstreamSubmission.model_validate(item))
                except ValidationError as e:
                    raise SourceUnavailable(f"Jotform API returned a malformed submission: {e}")
            if len(page) < self.page_size:
                break
            offset += self.page_size

        logger.info(f"Fetched {len(submissions)} Jotform submissions for form {self.form_id}")
        return submissions


def get_source():
    source = SubmissionSource()
    try:
        yield source
    finally:
        source.client.close()
