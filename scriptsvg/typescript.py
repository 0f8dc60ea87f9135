"""Sessions recorded by script(1)

This module reads the two files produced by `script --timing=FILE`:
    - the typescript, which holds the raw data written to the terminal
    preceded by a one line header
    - the timing file, which holds the delay preceding each chunk of data
    and the size of the chunk

The delay column of the timing file is shifted by one line relative to the
byte count column: the first delay is dropped and each byte count is paired
with the delay found on the following line. The last byte count has no
delay and is paired with 0.
"""
import math
from collections import namedtuple


class ScriptError(Exception):
    pass


class TimingError(ScriptError):
    pass


class TruncatedScriptError(ScriptError):
    pass


TimingRecord = namedtuple('TimingRecord', ['byte_count', 'delay'])
TimingRecord.__doc__ = 'Number of bytes to feed to the terminal after ' \
                       'waiting for `delay` seconds'


def _tokens(timing_file):
    for line_number, line in enumerate(timing_file, start=1):
        try:
            line = line.decode('ascii')
        except UnicodeDecodeError as exc:
            raise TimingError('Invalid data on line {} of timing file: {!r}'
                              .format(line_number, line)) from exc
        for token in line.split():
            yield line_number, token


def _parse_delay(line_number, token):
    try:
        delay = float(token)
    except ValueError as exc:
        raise TimingError('Invalid delay on line {} of timing file: "{}"'
                          .format(line_number, token)) from exc
    if delay < 0 or not math.isfinite(delay):
        raise TimingError('Invalid delay on line {} of timing file: "{}"'
                          .format(line_number, token))
    return delay


def _parse_byte_count(line_number, token):
    try:
        byte_count = int(token)
    except ValueError as exc:
        raise TimingError('Invalid byte count on line {} of timing file: "{}"'
                          .format(line_number, token)) from exc
    if byte_count < 0:
        raise TimingError('Invalid byte count on line {} of timing file: "{}"'
                          .format(line_number, token))
    return byte_count


def read_timings(timing_file):
    """Yield TimingRecords from a timing file opened in binary mode

    Raise TimingError when reaching an invalid record"""
    tokens = _tokens(timing_file)
    first_delay = next(tokens, None)
    if first_delay is None:
        return
    _parse_delay(*first_delay)

    for line_number, token in tokens:
        byte_count = _parse_byte_count(line_number, token)
        delay_token = next(tokens, None)
        if delay_token is None:
            delay = 0.0
        else:
            delay = _parse_delay(*delay_token)
        yield TimingRecord(byte_count, delay)


def skip_header(script_file):
    """Discard the first line of a typescript opened in binary mode"""
    script_file.readline()


def read_chunks(script_file, byte_count, buffer_size):
    """Yield the next `byte_count` bytes of the typescript in chunks of at
    most `buffer_size` bytes

    Raise TruncatedScriptError if the typescript ends prematurely"""
    while byte_count > 0:
        data = script_file.read(min(byte_count, buffer_size))
        if not data:
            raise TruncatedScriptError('Premature end of typescript: {} more '
                                       'bytes expected'.format(byte_count))
        byte_count -= len(data)
        yield data
