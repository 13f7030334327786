"""Parts for small HTTP servers: bodies, status codes, chunked copying, logging and tokens."""

__version__ = "0.1.0"

__all__ = [
    "clock",
    "ids",
    "log_file_writer",
    "logger",
    "prefix_file_set",
    "request_body",
    "response_body",
    "status",
    "tag_list",
    "tags",
    "token_set",
    "util",
]