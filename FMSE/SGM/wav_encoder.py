# =============================================================================
# wav_encoder.py — 16-bit PCM WAV Writer
# =============================================================================
#
# Streams normalized samples into a canonical RIFF/WAVE file.
#
# LIFECYCLE:
#   create()        header written with both length fields = 0
#   write_sample()  quantize → "<h" → append; sample count += 1
#   flush()         (optional) back-patch lengths for the samples so far
#   finalize()      back-patch lengths from the tracked count, release handle
#
#   created ──write_sample()──▶ writing ──finalize()──▶ finalized
#      │                          │
#      └──── I/O error / exception inside `with` ────▶ aborted
#
# The header only ever declares samples that were handed to the handle and
# flushed.  A run that dies halfway leaves a file whose header says 0 (or the
# count at the last flush()), never more than the data actually present.
#
# Length fields always come from the writer's own sample counter, never from
# an estimate supplied by the caller.

from __future__ import annotations

import math
import os
import struct
from typing import BinaryIO, Iterable, NamedTuple, Union

from FMSE.SMM.constants import (
    SAMPLE_RATE, CHANNELS, BITS_PER_SAMPLE, SAMPLE_FORMAT,
    SUPPORTED_BIT_DEPTHS, SUPPORTED_SAMPLE_FORMATS,
    PCM_MAX, PCM_MIN,
    WAVE_FORMAT_PCM, FMT_CHUNK_SIZE,
    RIFF_SIZE_OFFSET, DATA_SIZE_OFFSET, RIFF_OVERHEAD, MAX_DATA_BYTES, U32_MAX,
    ROUNDING_NEAREST, ROUNDING_TRUNCATE, ROUNDING_MODES,
)

_SAMPLE_I16 = struct.Struct("<h")
_U32        = struct.Struct("<I")

# Writer states
CREATED   = "created"
WRITING   = "writing"
FINALIZED = "finalized"
ABORTED   = "aborted"

Destination = Union[str, "os.PathLike[str]", BinaryIO]


# ── Errors ──────────────────────────────────────────────────────────────────

class WavEncoderError(Exception):
    """Base class for every failure raised by the WAV writer."""


class CreationFailure(WavEncoderError):
    """The destination could not be opened or created for writing."""


class WriteFailure(WavEncoderError):
    """A header or sample write failed partway through the file."""


class UsageError(WavEncoderError):
    """The writer was driven out of its valid state sequence."""


# ── Format description ──────────────────────────────────────────────────────

class WavSpec(NamedTuple):
    channels:        int = CHANNELS
    sample_rate:     int = SAMPLE_RATE
    bits_per_sample: int = BITS_PER_SAMPLE
    sample_format:   str = SAMPLE_FORMAT

    @property
    def bytes_per_sample(self) -> int:
        return self.bits_per_sample // 8

    @property
    def block_align(self) -> int:
        return self.channels * self.bytes_per_sample

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align

    def validate(self) -> None:
        """Raise ValueError unless the header can honestly describe the data."""
        if self.channels < 1:
            raise ValueError(f"channels must be >= 1, got {self.channels}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {self.sample_rate}")
        if self.bits_per_sample not in SUPPORTED_BIT_DEPTHS:
            raise ValueError(
                f"Unsupported bit depth: {self.bits_per_sample} "
                f"(supported: {sorted(SUPPORTED_BIT_DEPTHS)})"
            )
        if self.sample_format not in SUPPORTED_SAMPLE_FORMATS:
            raise ValueError(f"Unsupported sample format: {self.sample_format!r}")
        if self.byte_rate > U32_MAX:
            raise ValueError(
                f"byte rate {self.byte_rate} does not fit the 32-bit header field "
                f"(sample_rate={self.sample_rate}, channels={self.channels})"
            )


def build_header(spec: WavSpec, data_size: int) -> bytes:
    """Pack the 44-byte RIFF/WAVE header for `data_size` bytes of PCM."""
    hdr = struct.pack('<4sI4s', b'RIFF', RIFF_OVERHEAD + data_size, b'WAVE')
    fmt = struct.pack('<4sIHHIIHH',
                      b'fmt ', FMT_CHUNK_SIZE, WAVE_FORMAT_PCM, spec.channels,
                      spec.sample_rate, spec.byte_rate, spec.block_align,
                      spec.bits_per_sample)
    dat = struct.pack('<4sI', b'data', data_size)
    return hdr + fmt + dat


# ── Quantizer ───────────────────────────────────────────────────────────────

def quantize(sample: float, rounding: str = ROUNDING_NEAREST) -> int:
    """
    Map a normalized sample to a signed 16-bit PCM value.

    The input is clamped to [-1.0, 1.0] first.  Positive values scale by
    32767 and negative values by 32768, so both full-scale ends land exactly
    on the int16 limits:  1.0 → 32767,  -1.0 → -32768,  0.0 → 0.

    Args:
        sample:   Normalized amplitude.  Out-of-range values saturate.
        rounding: "nearest" (Python round(), ties to even) or "truncate"
                  (fraction dropped toward zero).

    Returns:
        int in [-32768, 32767]
    """
    if math.isnan(sample):
        raise ValueError("cannot quantize NaN sample")
    s = max(-1.0, min(1.0, sample))
    scaled = s * PCM_MAX if s >= 0.0 else s * -PCM_MIN

    if rounding == ROUNDING_NEAREST:
        value = round(scaled)
    elif rounding == ROUNDING_TRUNCATE:
        value = int(scaled)
    else:
        raise ValueError(f"rounding must be one of {ROUNDING_MODES}, got {rounding!r}")
    return max(PCM_MIN, min(PCM_MAX, value))


# ── Writer ──────────────────────────────────────────────────────────────────

class WavWriter:
    """
    Stateful PCM WAV writer.  Owns the sample counter and the write handle.

    Usage:
        with WavWriter.create("out.wav", WavSpec()) as w:
            for s in samples:
                w.write_sample(s)
        # finalized on clean exit, aborted (handle released) on exception
    """

    def __init__(
        self,
        handle: BinaryIO,
        spec: WavSpec,
        rounding: str,
        owns_handle: bool,
        name: str,
    ) -> None:
        self.spec      = spec
        self.rounding  = rounding
        self.name      = name
        self._handle   = handle
        self._owns     = owns_handle
        self._start    = handle.tell()      # header offset inside the stream
        self._n_samples = 0
        self._state    = CREATED

    @classmethod
    def create(
        cls,
        destination: Destination,
        spec: WavSpec = WavSpec(),
        rounding: str = ROUNDING_NEAREST,
    ) -> "WavWriter":
        """
        Open `destination` and write a placeholder header.

        Args:
            destination: File path (opened "wb", owned and closed by the
                         writer) or a seekable binary stream (flushed but
                         left open).
            spec:        Output format; validated before anything is opened.
            rounding:    Quantizer rounding mode.

        Raises:
            ValueError:      invalid spec or rounding mode
            CreationFailure: destination cannot be opened / is not seekable
            WriteFailure:    the header itself could not be written
        """
        spec.validate()
        if rounding not in ROUNDING_MODES:
            raise ValueError(f"rounding must be one of {ROUNDING_MODES}, got {rounding!r}")
        header = build_header(spec, 0)

        if isinstance(destination, (str, os.PathLike)):
            name = os.fspath(destination)
            try:
                handle = open(name, "wb")
            except OSError as exc:
                raise CreationFailure(f"Cannot create {name!r}: {exc}") from exc
            owns = True
        else:
            handle = destination
            name   = getattr(destination, "name", "<stream>")
            owns   = False
            try:
                seekable = handle.seekable()
            except (AttributeError, OSError) as exc:
                raise CreationFailure(f"Cannot write to {name!r}: {exc}") from exc
            if not seekable:
                raise CreationFailure(
                    f"Destination {name!r} is not seekable; the header cannot be back-patched."
                )

        writer = cls(handle, spec, rounding, owns, str(name))
        writer._write(header)
        return writer

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def state(self) -> str:
        return self._state

    @property
    def n_samples(self) -> int:
        """Samples written so far (all channels)."""
        return self._n_samples

    @property
    def n_frames(self) -> int:
        return self._n_samples // self.spec.channels

    @property
    def data_bytes(self) -> int:
        return self._n_samples * self.spec.bytes_per_sample

    @property
    def duration(self) -> float:
        """Seconds of audio written so far."""
        return self.n_frames / self.spec.sample_rate

    def _require_open(self, operation: str) -> None:
        if self._state in (FINALIZED, ABORTED):
            raise UsageError(f"{operation} called on a {self._state} writer ({self.name})")

    # ── Writing ──────────────────────────────────────────────────────────────

    def write_sample(self, sample: float) -> None:
        """Quantize one normalized sample and append it to the data chunk."""
        self._require_open("write_sample()")
        if self.data_bytes + self.spec.bytes_per_sample > MAX_DATA_BYTES:
            raise UsageError(
                f"data chunk would exceed the 32-bit RIFF limit "
                f"({MAX_DATA_BYTES:,} bytes)"
            )
        self._write(_SAMPLE_I16.pack(quantize(sample, self.rounding)))
        self._n_samples += 1
        self._state = WRITING

    def write_samples(self, samples: Iterable[float]) -> int:
        """Write every sample from `samples` in order; returns how many."""
        written = 0
        for sample in samples:
            self.write_sample(sample)
            written += 1
        return written

    def flush(self) -> None:
        """
        Back-patch the header for the samples written so far and flush.

        After this returns, the file is a valid WAV of n_samples samples even
        if the process dies before finalize().
        """
        self._require_open("flush()")
        self._patch_header()

    def finalize(self) -> None:
        """
        Write the final RIFF and data sizes and release the handle.

        Raises:
            UsageError:   already finalized / aborted, or the sample count is
                          not a whole number of frames
            WriteFailure: the back-patch or the final flush failed
        """
        self._require_open("finalize()")
        if self._n_samples % self.spec.channels:
            raise UsageError(
                f"{self._n_samples} samples is not a whole number of "
                f"{self.spec.channels}-channel frames"
            )
        self._patch_header()
        self._release(FINALIZED)

    def abort(self) -> None:
        """Release the handle without touching the header (error path)."""
        if self._state in (FINALIZED, ABORTED):
            return
        self._release(ABORTED)

    # ── Context manager ──────────────────────────────────────────────────────

    def __enter__(self) -> "WavWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._state not in (FINALIZED, ABORTED):
            if exc_type is None:
                try:
                    self.finalize()
                except BaseException:
                    self.abort()
                    raise
            else:
                self.abort()
        return False

    # ── Internals ────────────────────────────────────────────────────────────

    def _write(self, data: bytes) -> None:
        try:
            self._handle.write(data)
        except OSError as exc:
            self._release(ABORTED)
            raise WriteFailure(
                f"Write failed after {self._n_samples} samples to {self.name!r}: {exc}"
            ) from exc

    def _patch_header(self) -> None:
        handle    = self._handle
        data_size = self.data_bytes
        try:
            # Data first: the header must never describe bytes still in a buffer.
            handle.flush()
            end = handle.tell()
            handle.seek(self._start + RIFF_SIZE_OFFSET)
            handle.write(_U32.pack(RIFF_OVERHEAD + data_size))
            handle.seek(self._start + DATA_SIZE_OFFSET)
            handle.write(_U32.pack(data_size))
            handle.seek(end)
            handle.flush()
        except OSError as exc:
            self._release(ABORTED)
            raise WriteFailure(
                f"Header update failed for {self.name!r} at {self._n_samples} samples: {exc}"
            ) from exc

    def _release(self, state: str) -> None:
        self._state = state
        handle, self._handle = self._handle, None
        if handle is None or not self._owns:
            return
        try:
            handle.close()
        except OSError as exc:
            raise WriteFailure(f"Closing {self.name!r} failed: {exc}") from exc

    def __repr__(self) -> str:
        return (
            f"WavWriter({self.name!r}, state={self._state}, "
            f"n_samples={self._n_samples}, spec={tuple(self.spec)})"
        )
