"""
Stream Resolution

Opens input/output streams for a pair of paths. When both paths refer to
the same file, the input is first copied into an anonymous temporary
buffer, so truncating the output cannot destroy source bytes that have
not been read yet.
"""

import contextlib
import logging
import os
import shutil
import tempfile
from typing import BinaryIO, Iterator, Tuple

from ..constants import DEFAULT_CHUNK_SIZE, SPOOL_MAX_SIZE
from ..exceptions import FilesystemError

logger = logging.getLogger(__name__)


def same_file(input_path: str, output_path: str) -> bool:
    """
    Return True if both paths may refer to the same file.

    Symlinks are resolved; hard links are caught by samefile(). When the
    paths cannot be resolved, assume they alias.
    """
    try:
        if os.path.realpath(input_path) == os.path.realpath(output_path):
            return True
        if os.path.exists(input_path) and os.path.exists(output_path):
            return os.path.samefile(input_path, output_path)
        return False
    except (OSError, ValueError):
        return True


class StreamResolver:
    """
    Opens file streams with the configured chunk size as buffer size.

    Handles returned by open_for_read(), open_for_write() and
    resolve_pair() belong to the caller, who must close them.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._chunk_size = chunk_size

    def _open(self, path: str, mode: str) -> BinaryIO:
        # Only override the default buffer size when asked to; a buffer
        # size of 1 would request line buffering, invalid in binary mode
        buffering = -1
        if self._chunk_size > 1 and self._chunk_size != DEFAULT_CHUNK_SIZE:
            buffering = self._chunk_size
        try:
            return open(path, mode, buffering=buffering)
        except OSError as exc:
            raise FilesystemError(f"Could not open stream: {path}") from exc

    def open_for_read(self, path: str) -> BinaryIO:
        return self._open(path, 'rb')

    def open_for_write(self, path: str) -> BinaryIO:
        return self._open(path, 'wb')

    def copy_to_temp(self, source: BinaryIO) -> BinaryIO:
        """
        Copy a whole stream into an anonymous temporary buffer.

        The buffer stays in memory up to SPOOL_MAX_SIZE, then moves to
        disk. It is returned rewound to offset 0.
        """
        temp = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE, mode='w+b')
        try:
            source.seek(0)
            shutil.copyfileobj(source, temp, self._chunk_size)
            temp.seek(0)
        except OSError as exc:
            temp.close()
            raise FilesystemError("Could not copy stream to temporary buffer") from exc
        return temp

    def resolve_pair(self, input_path: str,
                     output_path: str) -> Tuple[BinaryIO, BinaryIO]:
        """
        Open (input, output) streams for a pair of paths.

        The output is opened, and truncated, only after the input stream
        is final. On failure nothing is left open.

        Raises:
            FilesystemError: If either path cannot be opened
        """
        if same_file(input_path, output_path):
            logger.warning("Input and output are the same file; staging %s",
                           input_path)
            real_stream = self.open_for_read(input_path)
            try:
                input_stream = self.copy_to_temp(real_stream)
            finally:
                real_stream.close()
        else:
            input_stream = self.open_for_read(input_path)

        try:
            output_stream = self.open_for_write(output_path)
        except FilesystemError:
            input_stream.close()
            raise
        return input_stream, output_stream

    @contextlib.contextmanager
    def open_pair(self, input_path: str,
                  output_path: str) -> Iterator[Tuple[BinaryIO, BinaryIO]]:
        """
        Context manager around resolve_pair() that always closes both.

        Read, write, flush and close failures inside the block surface as
        FilesystemError.
        """
        input_stream, output_stream = self.resolve_pair(input_path, output_path)
        try:
            with contextlib.ExitStack() as stack:
                stack.callback(input_stream.close)
                stack.callback(output_stream.close)
                yield input_stream, output_stream
        except OSError as exc:
            raise FilesystemError(
                f"I/O failure while transforming {input_path} -> {output_path}"
            ) from exc
