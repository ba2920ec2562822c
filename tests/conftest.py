import errno
import io

import pytest

from FMSE.SGM.fm_synth import SynthParameters


class FailingStream(io.BytesIO):
    """Seekable in-memory destination whose writes start failing past a byte budget.

    Header back-patches (seek + 4-byte write) are allowed through so that a
    flush() made before the failure point still lands.
    """

    def __init__(self, fail_after_bytes):
        super().__init__()
        self.fail_after_bytes = fail_after_bytes
        self.appended = 0

    def write(self, data):
        pos = self.tell()
        end = self.seek(0, io.SEEK_END)
        self.seek(pos)
        if pos >= end:
            if self.appended + len(data) > self.fail_after_bytes:
                raise OSError(errno.ENOSPC, "No space left on device")
            self.appended += len(data)
        return super().write(data)


@pytest.fixture
def default_params():
    return SynthParameters(440.0, 220.0, 100.0)


@pytest.fixture
def failing_stream():
    return FailingStream
