"""HTTP transport for the media portal."""

import http.client
import socket
import urllib.error
import urllib.parse
import urllib.request
from typing import Dict, Optional

from .errors import TransportError
from .models import DEFAULT_BASE_URL, DEFAULT_LANG, DEFAULT_TIMEOUT, Credential


class PortalClient:
    """Sends authenticated requests to the portal and returns response bodies.

    The credential is passed to every call rather than stored on the
    client. HTTP error statuses are not treated as failures: the portal
    reports success in the body, so the body is returned either way.
    Only network-level problems raise :class:`TransportError`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        lang: str = DEFAULT_LANG,
        timeout: float = DEFAULT_TIMEOUT,
        opener: Optional[urllib.request.OpenerDirector] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.lang = lang
        self.timeout = timeout
        self.opener = opener or urllib.request.build_opener()

    @property
    def search_url(self) -> str:
        return f"{self.base_url}/{self.lang}/MediaAjax/Search"

    def detail_url(self, guid: str) -> str:
        return f"{self.base_url}/{self.lang}/media/{urllib.parse.quote(guid, safe='')}"

    def post_form(self, url: str, fields: Dict[str, str], credential: Credential) -> str:
        body = urllib.parse.urlencode(fields).encode("utf-8")
        headers = credential.headers()
        headers["Content-Type"] = "application/x-www-form-urlencoded; charset=UTF-8"
        headers["X-Requested-With"] = "XMLHttpRequest"
        request = urllib.request.Request(url, data=body, headers=headers, method="POST")
        return self._send(request)

    def get_text(self, url: str, credential: Credential) -> str:
        request = urllib.request.Request(url, headers=credential.headers(), method="GET")
        return self._send(request)

    def _send(self, request: urllib.request.Request) -> str:
        try:
            with self.opener.open(request, timeout=self.timeout) as response:
                return self._decode(response)
        except urllib.error.HTTPError as exc:
            # The error object doubles as the response; keep its body.
            try:
                return self._decode(exc)
            except (OSError, http.client.HTTPException) as read_exc:
                raise TransportError(
                    f"{request.get_method()} {request.full_url} returned HTTP {exc.code} "
                    f"and its body could not be read: {read_exc}"
                ) from read_exc
            finally:
                exc.close()
        except urllib.error.URLError as exc:
            raise TransportError(f"{request.get_method()} {request.full_url} failed: {exc.reason}") from exc
        except (socket.timeout, TimeoutError) as exc:
            raise TransportError(f"{request.get_method()} {request.full_url} timed out") from exc
        except http.client.HTTPException as exc:
            # IncompleteRead, BadStatusLine and friends are not OSErrors
            raise TransportError(f"{request.get_method()} {request.full_url} failed: {exc!r}") from exc
        except OSError as exc:
            raise TransportError(f"{request.get_method()} {request.full_url} failed: {exc}") from exc

    @staticmethod
    def _decode(response) -> str:
        raw = response.read()
        charset = None
        headers = getattr(response, "headers", None)
        if hasattr(headers, "get_content_charset"):
            charset = headers.get_content_charset()
        try:
            return raw.decode(charset or "utf-8", "replace")
        except LookupError:
            return raw.decode("utf-8", "replace")
