#!/usr/bin/env python3
# =============================================================================
# validate.py — FMSE Self-Validation Suite
# =============================================================================
#
# Run directly:  python -m FMSE.SVM.validate
#
# Tests:
#   1. Constants integrity   — format math is self-consistent
#   2. FM generator          — range, determinism, degenerate parameters
#   3. Quantizer             — full-scale boundaries, clamping, rounding modes
#   4. WAV writer            — state machine, header back-patch
#   5. End-to-end render     — default render read back by wav_check
# =============================================================================

from __future__ import annotations

import io
import math
import os
import struct
import sys
import tempfile

from FMSE.SMM.constants import (
    SAMPLE_RATE, CHANNELS, BITS_PER_SAMPLE, BYTES_PER_SAMPLE,
    PCM_MAX, PCM_MIN, WAV_HEADER_BYTES, RIFF_OVERHEAD,
    DATA_SIZE_OFFSET, RIFF_SIZE_OFFSET, DURATION_SECONDS,
    ROUNDING_TRUNCATE,
)
from FMSE.SGM.fm_synth import (
    SynthParameters, FMSampleSequence, generate, render_block, total_samples,
)
from FMSE.SGM.wav_encoder import (
    WavSpec, WavWriter, UsageError, build_header, quantize,
    FINALIZED,
)
from FMSE.SGM.render import render_fm_wav
from FMSE.SVM.wav_check import verify_wav

PASS = "[PASS]"
FAIL = "[FAIL]"
INFO = "[INFO]"

failures = 0


def check(label: str, condition: bool, detail: str = "") -> bool:
    global failures
    if condition:
        print(f"  {PASS} {label}")
    else:
        print(f"  {FAIL} {label}{(' -- ' + detail) if detail else ''}")
        failures += 1
    return condition


def section(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def test_constants() -> None:
    section("TEST 1 — Constants Integrity")
    check("SAMPLE_RATE = 44100", SAMPLE_RATE == 44_100)
    check("CHANNELS = 1 (mono)", CHANNELS == 1)
    check("BITS_PER_SAMPLE = 16", BITS_PER_SAMPLE == 16)
    check("BYTES_PER_SAMPLE = 2", BYTES_PER_SAMPLE == 2)
    check("PCM range = [-32768, 32767]", (PCM_MIN, PCM_MAX) == (-32768, 32767))
    check("Header = 44 bytes", len(build_header(WavSpec(), 0)) == WAV_HEADER_BYTES)
    check("RIFF overhead = 36", RIFF_OVERHEAD == 36)
    spec = WavSpec()
    check("Block align = 2", spec.block_align == 2, f"got {spec.block_align}")
    check("Byte rate = 88200", spec.byte_rate == 88_200, f"got {spec.byte_rate}")
    check("5.0 s → 220500 samples",
          total_samples(SAMPLE_RATE, DURATION_SECONDS) == 220_500)


def test_generator() -> None:
    section("TEST 2 — FM Generator")
    params = SynthParameters()

    values = [generate(params, n / SAMPLE_RATE) for n in range(5_000)]
    check("Range: all samples in [-1, 1]",
          all(-1.0 <= v <= 1.0 for v in values),
          f"min={min(values)}, max={max(values)}")
    check("t=0 → 0.0", generate(params, 0.0) == 0.0)
    check("Deterministic: repeat calls identical",
          all(generate(params, n / SAMPLE_RATE) == values[n] for n in range(0, 5_000, 97)))

    pure = SynthParameters(440.0, 220.0, 0.0)
    check("Index 0 → pure carrier",
          all(generate(pure, t) == math.sin(2 * math.pi * 440.0 * t)
              for t in (0.0, 0.001, 0.25, 1.3)))

    silent = SynthParameters(0.0, 0.0, 100.0)
    check("Zero frequencies → silence",
          all(generate(silent, t) == 0.0 for t in (0.0, 0.5, 3.7)))

    seq = FMSampleSequence(params, SAMPLE_RATE, 0.1)
    first = list(seq)
    check("Sequence length = round(sr * duration)", len(seq) == 4_410)
    check("Sequence is restartable", list(seq) == first)
    check("Random access matches iteration", seq[1234] == first[1234])

    block = render_block(params, SAMPLE_RATE, 0, len(first))
    worst = max(abs(a - b) for a, b in zip(block, first))
    check("numpy block agrees with generate()", worst < 1e-9, f"max diff {worst}")


def test_quantizer() -> None:
    section("TEST 3 — Quantizer")
    check(" 1.0 → 32767", quantize(1.0) == 32_767)
    check("-1.0 → -32768", quantize(-1.0) == -32_768)
    check(" 0.0 → 0", quantize(0.0) == 0)
    check("Clamp above range", quantize(1.5) == 32_767)
    check("Clamp below range", quantize(-7.0) == -32_768)
    check("Nearest rounds 0.5 / 32767 up to 1", quantize(0.9 / 32_767) == 1)
    check("Truncate drops fraction", quantize(0.9 / 32_767, ROUNDING_TRUNCATE) == 0)


def test_writer() -> None:
    section("TEST 4 — WAV Writer")
    buf = io.BytesIO()
    w = WavWriter.create(buf, WavSpec())
    check("Placeholder header written", len(buf.getvalue()) == WAV_HEADER_BYTES)
    check("Placeholder data size = 0",
          struct.unpack_from("<I", buf.getvalue(), DATA_SIZE_OFFSET)[0] == 0)

    w.write_samples([0.0, 0.5, -0.5, 1.0, -1.0])
    w.finalize()
    raw = buf.getvalue()
    check("Finalized state", w.state == FINALIZED)
    check("Data size back-patched = 10",
          struct.unpack_from("<I", raw, DATA_SIZE_OFFSET)[0] == 10)
    check("RIFF size back-patched = 46",
          struct.unpack_from("<I", raw, RIFF_SIZE_OFFSET)[0] == 46)
    check("Samples little-endian int16",
          struct.unpack_from("<5h", raw, WAV_HEADER_BYTES) == (0, 16_384, -16_384, 32_767, -32_768))

    try:
        w.write_sample(0.0)
        check("write after finalize → UsageError", False, "no exception")
    except UsageError:
        check("write after finalize → UsageError", True)

    try:
        w.finalize()
        check("double finalize → UsageError", False, "no exception")
    except UsageError:
        check("double finalize → UsageError", True)


def test_end_to_end() -> None:
    section("TEST 5 — End-to-end Render")
    params = SynthParameters()
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "fm_synth.wav")
        result = render_fm_wav(params, DURATION_SECONDS, SAMPLE_RATE, path)
        check("220500 samples written", result.n_samples == 220_500,
              f"got {result.n_samples}")
        check("File size = 44 + 220500*2",
              os.path.getsize(path) == 44 + 220_500 * 2,
              f"got {os.path.getsize(path)}")

        report = verify_wav(path, params, DURATION_SECONDS, SAMPLE_RATE)
        for c in report.checks:
            check(f"wav_check: {c.label}", c.passed, c.detail)
        print(f"  {INFO} {len(report.checks)} verifier checks run")


def main() -> int:
    global failures
    failures = 0

    test_constants()
    test_generator()
    test_quantizer()
    test_writer()
    test_end_to_end()

    print("\n" + "=" * 60)
    if failures == 0:
        print(f"  ALL TESTS PASSED")
    else:
        print(f"  {failures} TEST(S) FAILED")
    print("=" * 60 + "\n")
    return 0 if failures == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
