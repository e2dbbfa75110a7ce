"""HTTP response returned by the request pipeline."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from courier.codec import json_unmarshal


if TYPE_CHECKING:
    from courier.config import RequestConfig


@dataclass
class Response:
    """Response of a request.

    Attributes:
        status: HTTP status code.
        headers: Response headers (decoding transforms may remove entries).
        data: Response body after response transforms.
        config: Request configuration that produced the response.
        request: Wire request that was sent.
        original_response: Underlying httpx response, when one exists.
    """

    status: int = 0
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    data: bytes = b""
    config: "RequestConfig | None" = field(default=None, repr=False)
    request: httpx.Request | None = field(default=None, repr=False)
    original_response: httpx.Response | None = field(default=None, repr=False)

    def json(self, target: Any = Any) -> Any:
        """Decode the body as JSON.

        Args:
            target: Type to decode into (plain JSON values by default).

        Returns:
            The decoded value.
        """
        return json_unmarshal(self.data, target)
