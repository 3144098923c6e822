"""QR code download for payment methods."""
import logging
import re
from typing import Optional

import httpx
from pydantic import BaseModel

from app.services.checkout.constants import IN_APP_BROWSER_MARKERS

logger = logging.getLogger(__name__)


class QrDownload(BaseModel):
    """Result of a QR download: the image bytes, or a direct link to fall back to."""

    filename: str
    content: Optional[bytes] = None
    content_type: str = "image/png"
    fallback_url: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.content is not None


def is_in_app_messenger_browser(user_agent: Optional[str]) -> bool:
    """Downloads do not work inside the Messenger in-app browser."""
    if not user_agent:
        return False
    upper = user_agent.upper()
    return any(marker in upper for marker in IN_APP_BROWSER_MARKERS)


def qr_filename(payment_method_name: str) -> str:
    slug = re.sub(r"\s+", "-", payment_method_name.lower())
    return f"qr-code-{slug}.png"


class QrCodeDownloader:
    """Fetches QR images as blobs, falling back to a plain link."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def _fetch(self, qr_code_url: str) -> httpx.Response:
        response = await self.client.get(qr_code_url, headers={"Cache-Control": "no-cache"})
        if not response.is_success:
            raise httpx.HTTPStatusError(
                f"HTTP error! status: {response.status_code}",
                request=response.request,
                response=response,
            )
        return response

    async def download(
        self,
        qr_code_url: str,
        payment_method_name: str,
        user_agent: Optional[str] = None,
    ) -> QrDownload:
        """Try a blob download first; any failure yields the link fallback."""
        filename = qr_filename(payment_method_name)
        try:
            if is_in_app_messenger_browser(user_agent):
                raise RuntimeError("Downloads are not supported in the in-app browser")
            response = await self._fetch(qr_code_url)
            return QrDownload(
                filename=filename,
                content=response.content,
                content_type=response.headers.get("content-type", "image/png"),
            )
        except Exception as e:
            logger.warning(f"[QR] Download failed, falling back to direct link: {e}")
            return QrDownload(filename=filename, fallback_url=qr_code_url)
