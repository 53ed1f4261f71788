import logging
from typing import List, Optional

import httpx

from ..config import JSONBIN_API_KEY, JSONBIN_BIN_ID, JSONBIN_BASE_URL, HTTP_TIMEOUT
from ..exceptions import StoreUnavailable
from ..models.submission import SubmissionRecord, PLACEHOLDER_RECORD, is_placeholder

logger = logging.getLogger(__name__)


class SubmissionStore:
    """Whole-document access to the JSON array holding every submission record.

    The store only supports full reads and full replaces, so every mutation is a
    read-modify-write and the last writer wins.
    """

    def __init__(
        self,
        api_key: Optional[str] = JSONBIN_API_KEY,
        bin_id: Optional[str] = JSONBIN_BIN_ID,
        base_url: str = JSONBIN_BASE_URL,
        client: Optional[httpx.Client] = None
    ):
        self.api_key = api_key
        self.bin_id = bin_id
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT)

    @property
    def bin_url(self) -> str:
        return f"{self.base_url}/b/{self.bin_id}"

    def load(self) -> List[SubmissionRecord]:
        """Read the document, raising StoreUnavailable on any failure."""
        try:
            response = self.client.get(
                f"{self.bin_url}/latest",
                headers={"X-Master-Key": self.api_key or "", "X-Bin-Meta": "false"}
            )
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"JSONBin fetch failed: {e}")

        if response.is_error:
            raise StoreUnavailable(
                f"JSONBin fetch: {response.status_code}",
                upstream_status=response.status_code,
                upstream_body=response.text
            )

        try:
            data = response.json()
        except ValueError:
            raise StoreUnavailable("JSONBin returned invalid JSON")

        if not isinstance(data, list):
            raise StoreUnavailable("Data is not an array")

        return [
            SubmissionRecord.from_document(item)
            for item in data
            if isinstance(item, dict) and not is_placeholder(item)
        ]

    def fetch_all(self) -> List[SubmissionRecord]:
        """Read the document, treating an unreachable store as empty."""
        try:
            return self.load()
        except StoreUnavailable as e:
            logger.warning(f"Treating store as empty: {e.message}")
            return []

    def replace_all(self, records: List[SubmissionRecord]) -> None:
        document = [record.to_document() for record in records] or [PLACEHOLDER_RECORD]
        try:
            response = self.client.put(
                self.bin_url,
                headers={"Content-Type": "application/json", "X-Master-Key": self.api_key or ""},
                json=document
            )
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"JSONBin update failed: {e}")

        if response.is_error:
            raise StoreUnavailable(
                f"JSONBin update: {response.status_code}",
                upstream_status=response.status_code,
                upstream_body=response.text
            )
        logger.info(f"Stored {len(records)} submissions")


def get_store():
    store = SubmissionStore()
    try:
        yield store
    finally:
        store.client.close()
