#!/usr/bin/env python3
# =============================================================================
# wav_check.py — Rendered WAV Verifier
# =============================================================================
#
# Reads a file produced by the render pipeline back from disk and checks it
# from two independent directions:
#
#   Header  — parsed here with struct, field by field, so a header that lies
#             about its own contents is caught even if a decoder tolerates it.
#   Samples — decoded with soundfile (libsndfile), i.e. a conformant PCM
#             decoder, then compared against the generator evaluated with
#             numpy and quantized the same way the encoder does.
#
# Usage:
#   python -m FMSE.SVM.wav_check fm_synth.wav
#   python -m FMSE.SVM.wav_check out.wav --carrier 440 --modulator 220 --index 0
#   python -m FMSE.SVM.wav_check out.wav --duration 1.5 --header-only
#
# Output sections:
#   [1] Header fields
#   [2] Checks (PASS / FAIL each)
#   [3] VERDICT
# =============================================================================

from __future__ import annotations

import argparse
import os
import struct
import sys
from typing import NamedTuple

import numpy as np
import soundfile as sf

from FMSE.SMM.constants import (
    SAMPLE_RATE, CHANNELS, BITS_PER_SAMPLE, DURATION_SECONDS,
    CARRIER_FREQ, MODULATOR_FREQ, MODULATION_INDEX,
    PCM_MAX, PCM_MIN, WAVE_FORMAT_PCM,
    ROUNDING_NEAREST, ROUNDING_TRUNCATE, ROUNDING_MODES,
)
from FMSE.SGM.fm_synth import SynthParameters, generate, render_block, total_samples
from FMSE.SGM.wav_encoder import quantize

# Largest allowed |decoded - expected| per sample.  numpy.sin and math.sin may
# disagree in the last ulp, which can move a value across a rounding boundary.
MAX_LSB_ERROR = 1

DIVIDER = "=" * 68


class WavHeader(NamedTuple):
    riff_size:       int
    format_tag:      int
    channels:        int
    sample_rate:     int
    byte_rate:       int
    block_align:     int
    bits_per_sample: int
    data_offset:     int     # byte offset of the first PCM sample
    data_size:       int     # as declared by the data chunk
    file_size:       int     # actual size on disk


class CheckResult(NamedTuple):
    label:  str
    passed: bool
    detail: str = ""


class VerifyReport(NamedTuple):
    path:    str
    header:  WavHeader
    checks:  list[CheckResult]
    passed:  bool


# ── Header parser ─────────────────────────────────────────────────────────────

def read_header(path: str) -> WavHeader:
    """
    Parse the RIFF/WAVE header of `path`.

    Unknown chunks before "data" are skipped (with RIFF word padding).

    Raises
    ------
    ValueError
        Not a RIFF/WAVE file, or the fmt / data chunk is missing or short.
    """
    file_size = os.path.getsize(path)
    with open(path, "rb") as f:
        head = f.read(12)
        if len(head) < 12 or head[:4] != b'RIFF':
            raise ValueError("Not a RIFF file")
        if head[8:12] != b'WAVE':
            raise ValueError("RIFF type is not WAVE")
        riff_size = struct.unpack('<I', head[4:8])[0]

        fmt = None
        while True:
            chunk = f.read(8)
            if len(chunk) < 8:
                break
            chunk_id, chunk_size = struct.unpack('<4sI', chunk)

            if chunk_id == b'fmt ':
                body = f.read(chunk_size)
                if len(body) < 16:
                    raise ValueError(f"fmt chunk too short ({len(body)} bytes)")
                fmt = struct.unpack('<HHIIHH', body[:16])
                if chunk_size & 1:
                    f.seek(1, os.SEEK_CUR)
            elif chunk_id == b'data':
                if fmt is None:
                    raise ValueError("data chunk precedes fmt chunk")
                format_tag, channels, sample_rate, byte_rate, block_align, bits = fmt
                return WavHeader(
                    riff_size=riff_size,
                    format_tag=format_tag,
                    channels=channels,
                    sample_rate=sample_rate,
                    byte_rate=byte_rate,
                    block_align=block_align,
                    bits_per_sample=bits,
                    data_offset=f.tell(),
                    data_size=chunk_size,
                    file_size=file_size,
                )
            else:
                f.seek(chunk_size + (chunk_size & 1), os.SEEK_CUR)

    raise ValueError("Could not find fmt or data chunk in WAV")


# ── Expected waveform ─────────────────────────────────────────────────────────

def expected_pcm(
    params: SynthParameters,
    sample_rate: int,
    count: int,
    rounding: str = ROUNDING_NEAREST,
) -> np.ndarray:
    """Vectorised equivalent of quantize(generate(...)) for samples 0..count-1."""
    if rounding not in ROUNDING_MODES:
        raise ValueError(f"rounding must be one of {ROUNDING_MODES}, got {rounding!r}")
    x = np.clip(render_block(params, sample_rate, 0, count), -1.0, 1.0)
    scaled = np.where(x >= 0.0, x * PCM_MAX, x * -PCM_MIN)
    if rounding == ROUNDING_TRUNCATE:
        scaled = np.trunc(scaled)
    else:
        scaled = np.rint(scaled)
    return np.clip(scaled, PCM_MIN, PCM_MAX).astype(np.int16)


# ── Verifier ──────────────────────────────────────────────────────────────────

def verify_wav(
    path: str,
    params: SynthParameters | None = None,
    duration_seconds: float = DURATION_SECONDS,
    sample_rate: int = SAMPLE_RATE,
    rounding: str = ROUNDING_NEAREST,
) -> VerifyReport:
    """
    Check that `path` is a well-formed mono 16-bit WAV of the requested
    length and, when `params` is given, that its samples are the FM render.

    Returns
    -------
    VerifyReport  — `passed` is True only if every check passed.

    Raises
    ------
    ValueError  if the header cannot be parsed at all.
    OSError     if the file cannot be read.
    """
    header = read_header(path)
    n_expected = total_samples(sample_rate, duration_seconds)
    bytes_per_sample = BITS_PER_SAMPLE // 8
    checks: list[CheckResult] = []

    def check(label: str, condition: bool, detail: str = "") -> bool:
        checks.append(CheckResult(label, bool(condition), detail))
        return bool(condition)

    # ── Header ──────────────────────────────────────────────────────────────
    check("RIFF size = file size - 8",
          header.riff_size == header.file_size - 8,
          f"declared {header.riff_size}, actual {header.file_size - 8}")
    check("Format tag = 1 (PCM)",
          header.format_tag == WAVE_FORMAT_PCM, f"got {header.format_tag}")
    check(f"Channels = {CHANNELS}",
          header.channels == CHANNELS, f"got {header.channels}")
    check(f"Sample rate = {sample_rate}",
          header.sample_rate == sample_rate, f"got {header.sample_rate}")
    check(f"Bits per sample = {BITS_PER_SAMPLE}",
          header.bits_per_sample == BITS_PER_SAMPLE, f"got {header.bits_per_sample}")
    check("Block align = channels * bits / 8",
          header.block_align == header.channels * header.bits_per_sample // 8,
          f"got {header.block_align}")
    check("Byte rate = sample rate * block align",
          header.byte_rate == header.sample_rate * header.block_align,
          f"got {header.byte_rate}")
    check("Data chunk fully present",
          header.data_offset + header.data_size <= header.file_size,
          f"declares {header.data_size} bytes, "
          f"{header.file_size - header.data_offset} on disk")
    check(f"Sample count = {n_expected:,}",
          header.data_size == n_expected * bytes_per_sample,
          f"data size {header.data_size} bytes = "
          f"{header.data_size // bytes_per_sample:,} samples")

    # ── Decoded samples ─────────────────────────────────────────────────────
    if params is not None:
        info = sf.info(path)
        check("Decoder: 1 channel, PCM_16",
              info.channels == CHANNELS and info.subtype == "PCM_16",
              f"got {info.channels} ch, {info.subtype}")
        check(f"Decoder: {n_expected:,} frames at {sample_rate} Hz",
              info.frames == n_expected and info.samplerate == sample_rate,
              f"got {info.frames:,} frames at {info.samplerate} Hz")

        data, _sr = sf.read(path, dtype="int16", always_2d=True)
        decoded = data[:, 0]
        if len(decoded):
            first = quantize(generate(params, 0.0), rounding)
            check(f"First sample = {first}",
                  int(decoded[0]) == first, f"got {int(decoded[0])}")

        if len(decoded) == n_expected:
            expected = expected_pcm(params, sample_rate, n_expected, rounding)
            err = np.abs(decoded.astype(np.int32) - expected.astype(np.int32))
            worst = int(err.max()) if len(err) else 0
            where = int(err.argmax()) if len(err) else 0
            check(f"Samples match generator (±{MAX_LSB_ERROR} LSB)",
                  worst <= MAX_LSB_ERROR,
                  f"max error {worst} LSB at sample {where}")
        else:
            check("Samples match generator",
                  False, f"decoded {len(decoded):,} samples, expected {n_expected:,}")

    return VerifyReport(
        path=path,
        header=header,
        checks=checks,
        passed=all(c.passed for c in checks),
    )


def print_report(report: VerifyReport) -> None:
    h = report.header
    print(f"\n{DIVIDER}")
    print(f"  WAV Verification: {os.path.basename(report.path)}")
    print(DIVIDER)
    print(f"  File size   : {h.file_size:,} bytes")
    print(f"  Format tag  : {h.format_tag} ({'PCM' if h.format_tag == WAVE_FORMAT_PCM else 'OTHER'})")
    print(f"  Channels    : {h.channels}")
    print(f"  Rate        : {h.sample_rate} Hz")
    print(f"  Byte rate   : {h.byte_rate}")
    print(f"  Block align : {h.block_align}")
    print(f"  Bit depth   : {h.bits_per_sample}")
    print(f"  Data        : {h.data_size:,} bytes at offset {h.data_offset}")

    print(f"\n  -- Checks --")
    for c in report.checks:
        if c.passed:
            print(f"  [PASS] {c.label}")
        else:
            print(f"  [FAIL] {c.label}{(' -- ' + c.detail) if c.detail else ''}")

    print(f"\n{DIVIDER}")
    if report.passed:
        print(f"  VERDICT: PASS — file matches the requested render")
    else:
        failed = sum(1 for c in report.checks if not c.passed)
        print(f"  VERDICT: FAIL — {failed} check(s) failed")
    print(f"{DIVIDER}\n")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Verify a rendered FM WAV file against its parameters",
    )
    parser.add_argument("wav", help="Path to the WAV file")
    parser.add_argument("--carrier", type=float, default=CARRIER_FREQ,
                        help=f"Carrier frequency, default {CARRIER_FREQ}")
    parser.add_argument("--modulator", type=float, default=MODULATOR_FREQ,
                        help=f"Modulator frequency, default {MODULATOR_FREQ}")
    parser.add_argument("--index", type=float, default=MODULATION_INDEX,
                        help=f"Modulation index, default {MODULATION_INDEX}")
    parser.add_argument("--duration", type=float, default=DURATION_SECONDS,
                        help=f"Expected duration in seconds, default {DURATION_SECONDS}")
    parser.add_argument("--sample-rate", type=int, default=SAMPLE_RATE,
                        help=f"Expected sample rate, default {SAMPLE_RATE}")
    parser.add_argument("--truncate", action="store_true",
                        help="File was quantized by truncation")
    parser.add_argument("--header-only", action="store_true",
                        help="Skip decoding; check the header fields only")
    args = parser.parse_args(argv)

    if not os.path.exists(args.wav):
        print(f"[!!] File not found: {args.wav}", file=sys.stderr)
        sys.exit(1)

    params = None
    if not args.header_only:
        params = SynthParameters(args.carrier, args.modulator, args.index)

    try:
        report = verify_wav(
            args.wav,
            params=params,
            duration_seconds=args.duration,
            sample_rate=args.sample_rate,
            rounding=ROUNDING_TRUNCATE if args.truncate else ROUNDING_NEAREST,
        )
    except (ValueError, OSError, sf.LibsndfileError) as exc:
        print(f"[!!] Cannot verify {args.wav}: {exc}", file=sys.stderr)
        sys.exit(1)

    print_report(report)
    sys.exit(0 if report.passed else 1)


if __name__ == "__main__":
    main()
