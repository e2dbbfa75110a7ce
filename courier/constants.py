"""HTTP constants for the request pipeline.

Centralizes header names, content types and status codes used across modules.
"""

VERSION = "0.1.0"

USER_AGENT = f"courier/{VERSION}"

# Header names
HEADER_USER_AGENT = "User-Agent"
HEADER_ACCEPT_ENCODING = "Accept-Encoding"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CONTENT_ENCODING = "Content-Encoding"
HEADER_CONTENT_LENGTH = "Content-Length"
HEADER_HOST = "Host"

DEFAULT_ACCEPT_ENCODING = "gzip, br"

# Content types
CONTENT_TYPE_JSON = "application/json;charset=utf-8"
CONTENT_TYPE_WWW_FORM_URLENCODED = "application/x-www-form-urlencoded;charset=utf-8"

# Content encodings handled by the default response transforms
GZIP_ENCODING = "gzip"
BROTLI_ENCODING = "br"

# HTTP methods
METHOD_GET = "GET"
METHOD_DELETE = "DELETE"
METHOD_HEAD = "HEAD"
METHOD_OPTIONS = "OPTIONS"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_PATCH = "PATCH"

# Only these methods carry a transformed request body
BODY_METHODS = frozenset({METHOD_POST, METHOD_PUT, METHOD_PATCH})

# HTTP Status Codes
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500

# Chunk size for reading request body streams
DEFAULT_CHUNK_SIZE = 8192

