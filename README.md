# serveline

Parts for building small HTTP/1.1 servers. It uses only the standard library.

## What is in it

- `serveline.request_body` has `RequestBody`. A request body can be held in
  memory (`from_bytes`), or kept in a file (`from_file`, or `from_temp_file`,
  which deletes the file when the body is garbage-collected). It can also be
  *pending*, meaning it has not been read from the client yet
  (`pending_known`, `pending_unknown`). Reading a pending body raises
  `PendingBodyError`.
  - The coroutines `read_http_body_to_bytes`, `read_http_unsized_body_to_bytes`,
    `read_http_body_to_file` and `read_http_unsized_body_to_file` read a body
    from any object that has an async `read(n)`, such as an
    `asyncio.StreamReader`.
  - They raise `BodyTruncatedError`, `BodyTooLongError` or `BodySaveError`.
- `serveline.response_body` has `ResponseBody`. It holds a body in memory or
  in a file, reports its length, and reads it back with `read_bytes()` or
  `read_text()`. `read_text()` raises `ValueError` for bytes that are not UTF-8.
- `serveline.status` has `reason_phrase(code)`, which returns the standard
  phrase or `"Response"` for unknown codes. `status_class(code)` returns the
  hundreds digit.
- `serveline.util` has the following:
  - `copy_async(reader, writer)` copies a stream.
  - `copy_chunked_async(reader, writer)` copies it in HTTP chunked transfer
    encoding.
  - `escape_ascii` and `escape_and_elide` make bytes printable.
  - `find_slice` searches for a subsequence.
  - `WriteCounter` counts the bytes written through a writer.
- `serveline.logger` handles structured logging:
  - `info`, `error` and `debug` send `LogEvent`s to a global `LogChannel`.
    When no logger has been set, the first event starts a default logger that
    prints to stdout.
  - `add_thread_local_log_tag` adds tags to every event that the current
    thread logs.
  - `LogEvent.write_jsonl` writes an event as one JSON line.
- `serveline.log_file_writer` has `LogFileWriter`, which writes events as JSON
  Lines to files named `<prefix>.<YYYYMMDDTHHMMSSZ>-<n>`.
  - It starts a new file when the current one would pass `max_write_bytes`
    (default 10 MiB, at least 64 KiB). It also starts one when the current
    file is older than `max_write_age` (default 24 hours, at least 1 second).
  - It deletes the oldest files to stay within `max_keep_bytes`. If
    `with_max_keep_age` is set (at least 1 minute), it also deletes files
    older than that age.
- `serveline.tags` has `Tag`, `TagValue` and `tag()`, and
  `serveline.tag_list` has `TagList`. Together they are the name/value pairs
  attached to log events.
- `serveline.prefix_file_set` has `PrefixFileSet`, which tracks the files that
  share a name prefix so the oldest can be deleted.
- `serveline.token_set` has `TokenSet`, which hands out a fixed number of
  tokens:
  - `wait_token()` blocks until a token is free.
  - `wait_token_timeout()` waits at most a given time and then raises
    `TokenTimeout`.
  - `await async_wait_token()` waits without blocking the event loop.
  - A token goes back to the set on `release()` or at the end of its `with`
    block.
- `serveline.clock` does UTC calendar arithmetic on epoch seconds
  (`DateTime`, `iso8601_utc`, `epoch_ns`, `epoch_s`).
- `serveline.ids` has `next_insecure_rand_u64()`, which gives fast random
  identifiers that are not meant for secrets.

## What it does not do

There is no server in this package. It does not accept connections, parse
request lines, headers or cookies, or route requests. It has no response
object that carries a status code and headers, and it does not write
responses to a connection. You supply those parts and use these pieces inside
them.

## Installing

```
pip install serveline
```

## Examples

Reason phrases and bodies:

```python
from serveline.status import reason_phrase
from serveline.response_body import ResponseBody

reason_phrase(404)                      # "Not Found"
body = ResponseBody.from_bytes(b"hello")
body.length()                           # 5
body.read_text()                        # "hello"
```

Logging to JSON Lines files:

```python
from serveline.log_file_writer import LogFileWriter
from serveline.logger import info, set_global_logger
from serveline.tags import tag

channel = (
    LogFileWriter("logs/server.log", 100 * 1024 * 1024)
    .with_max_write_bytes(1024 * 1024)
    .start_writer_thread()
)
with set_global_logger(channel):
    info("server started", [tag("port", 8080)])
```

When the `with` block ends, the global logger is cleared and the channel is
closed. The writer thread then writes any events still queued and closes its
file. The directory of the prefix (`logs/` here) must already exist.

> **Warning:** `LogFileWriter` deletes files whose names start with the path
> prefix you give it. It deletes the oldest ones first, until the total size
> fits within `max_keep_bytes`.

Limiting concurrency:

```python
from serveline.token_set import TokenSet

tokens = TokenSet(10)
with tokens.wait_token():
    ...  # at most ten of these run at once
```

## Running the tests

```
pip install -e ".[test]"
pytest
```