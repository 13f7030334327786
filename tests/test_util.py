import asyncio

import pytest

from serveline.util import (
    CopyReadError,
    CopyWriteError,
    WriteCounter,
    copy_async,
    copy_chunked_async,
    escape_and_elide,
    escape_ascii,
    find_slice,
)


class _Sink:
    def __init__(self):
        self.data = bytearray()
        self.drains = 0

    def write(self, data):
        self.data += data

    async def drain(self):
        self.drains += 1


class _BrokenSink:
    def write(self, data):
        raise ConnectionResetError("peer went away")

    async def drain(self):
        pass


class _BrokenReader:
    async def read(self, n):
        raise OSError("read failed")


def _reader(data):
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


def _dechunk(raw):
    out = bytearray()
    rest = raw
    while True:
        size_line, rest = rest.split(b"\r\n", 1)
        size = int(size_line, 16)
        if size == 0:
            assert rest == b"\r\n"
            return bytes(out)
        out += rest[:size]
        assert rest[size : size + 2] == b"\r\n"
        rest = rest[size + 2 :]


def test_escape_ascii_examples():
    assert escape_ascii(b"abc") == "abc"
    assert escape_ascii(b"abc\n") == "abc\\n"
    assert escape_ascii("Euro sign: \u20ac".encode()) == "Euro sign: \\xe2\\x82\\xac"
    assert escape_ascii(bytes([1, 2, 3])) == "\\x01\\x02\\x03"


def test_escape_ascii_output_is_printable_ascii():
    text = escape_ascii(bytes(range(256)))
    assert all(0x20 <= ord(c) < 0x7F for c in text)
    assert "\\\\" in text and '\\"' in text and "\\'" in text


def test_escape_and_elide():
    assert escape_and_elide(b"abcdef", 3) == "abc..."
    assert escape_and_elide(b"abc", 3) == "abc"
    assert escape_and_elide(b"a\nb", 100) == escape_ascii(b"a\nb")


@pytest.mark.parametrize(
    "needle,haystack",
    [(b"cd", b"abcdcd"), (b"a", b"a"), ([2, 3], [1, 2, 3, 2, 3]), ((5,), (1, 5, 5))],
)
def test_find_slice_finds_first(needle, haystack):
    index = find_slice(needle, haystack)
    width = len(needle)
    assert list(haystack[index : index + width]) == list(needle)
    assert all(
        list(haystack[start : start + width]) != list(needle) for start in range(index)
    )


def test_find_slice_missing():
    assert find_slice(b"xyz", b"abc") is None
    assert find_slice(b"abcd", b"abc") is None
    assert find_slice([9], [1, 2, 3]) is None
    assert find_slice(b"", b"abc") == 0


@pytest.mark.asyncio
async def test_copy_async_copies_everything():
    data = bytes(range(256)) * 600
    sink = _Sink()
    copied = await copy_async(_reader(data), sink)
    assert copied == len(data)
    assert bytes(sink.data) == data


@pytest.mark.asyncio
async def test_copy_async_empty():
    sink = _Sink()
    assert await copy_async(_reader(b""), sink) == 0
    assert sink.data == b""


@pytest.mark.asyncio
async def test_copy_async_errors():
    with pytest.raises(CopyReadError):
        await copy_async(_BrokenReader(), _Sink())
    with pytest.raises(CopyWriteError):
        await copy_async(_reader(b"abc"), _BrokenSink())


@pytest.mark.asyncio
async def test_copy_chunked_small():
    sink = _Sink()
    copied = await copy_chunked_async(_reader(b"hello"), sink)
    assert bytes(sink.data) == b"5\r\nhello\r\n0\r\n\r\n"
    assert copied == len(b"hello") + 3


@pytest.mark.asyncio
async def test_copy_chunked_empty_body():
    sink = _Sink()
    copied = await copy_chunked_async(_reader(b""), sink)
    assert bytes(sink.data) == b"0\r\n\r\n"
    assert copied == 3


@pytest.mark.asyncio
async def test_copy_chunked_large_round_trip():
    data = bytes(range(256)) * 300
    sink = _Sink()
    copied = await copy_chunked_async(_reader(data), sink)
    assert copied == len(data) + 3
    assert _dechunk(bytes(sink.data)) == data
    first_size = int(bytes(sink.data).split(b"\r\n", 1)[0], 16)
    assert first_size < 0x10000


@pytest.mark.asyncio
async def test_copy_chunked_errors():
    with pytest.raises(CopyReadError):
        await copy_chunked_async(_BrokenReader(), _Sink())
    with pytest.raises(CopyWriteError):
        await copy_chunked_async(_reader(b"abc"), _BrokenSink())


@pytest.mark.asyncio
async def test_write_counter_counts_and_passes_through():
    sink = _Sink()
    counter = WriteCounter(sink)
    counter.write(b"abc")
    counter.write(b"de")
    await counter.drain()
    assert counter.num_bytes_written() == 5
    assert bytes(sink.data) == b"abcde"
    assert sink.drains == 1


@pytest.mark.asyncio
async def test_write_counter_with_copy():
    data = b"x" * 1000
    counter = WriteCounter(_Sink())
    copied = await copy_async(_reader(data), counter)
    assert counter.num_bytes_written() == copied == len(data)


def test_write_counter_does_not_count_failed_write():
    counter = WriteCounter(_BrokenSink())
    with pytest.raises(ConnectionResetError):
        counter.write(b"abc")
    assert counter.num_bytes_written() == 0