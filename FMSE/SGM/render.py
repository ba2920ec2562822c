#!/usr/bin/env python3
# =============================================================================
# render.py — FM Render Pipeline and `fmse` CLI
# =============================================================================
#
# Wires the generator to the encoder in one strict sequential loop:
#
#   for n in 0 .. total_samples-1:
#       s = generate(params, n / sample_rate)     # SGM/fm_synth.py
#       writer.write_sample(s)                    # SGM/wav_encoder.py
#   writer.finalize()
#
# One sample is alive at a time.  The output handle is scoped by the writer's
# context manager, so it is released on success and on every error path.
#
# Usage:
#   fmse
#   fmse --carrier 440 --modulator 220 --index 100 --duration 5 -o fm_synth.wav
#   fmse --index 0 --truncate --verify
#   python -m FMSE --help
#
# Exit status:
#   0  file finalized (and verified, with --verify)
#   1  creation / write failure, or verification failed
#   2  invalid option value (argparse)
# =============================================================================

from __future__ import annotations

import argparse
import os
import sys
from typing import NamedTuple

from FMSE.SMM.constants import (
    SAMPLE_RATE, DURATION_SECONDS, OUTPUT_PATH,
    CARRIER_FREQ, MODULATOR_FREQ, MODULATION_INDEX,
    WAV_HEADER_BYTES, BYTES_PER_SAMPLE, U32_MAX,
    ROUNDING_NEAREST, ROUNDING_TRUNCATE,
)
from FMSE.SGM.fm_synth import SynthParameters, FMSampleSequence
from FMSE.SGM.wav_encoder import WavSpec, WavWriter, WavEncoderError, Destination

DIVIDER = "=" * 68
MAX_SAMPLE_RATE = U32_MAX // BYTES_PER_SAMPLE   # mono byte rate must fit a uint32


class RenderResult(NamedTuple):
    path:       str
    n_samples:  int
    data_bytes: int
    file_bytes: int       # header + data
    spec:       WavSpec


def render_fm_wav(
    params: SynthParameters,
    duration_seconds: float = DURATION_SECONDS,
    sample_rate: int = SAMPLE_RATE,
    output_path: Destination = OUTPUT_PATH,
    rounding: str = ROUNDING_NEAREST,
    flush_every: int | None = None,
) -> RenderResult:
    """
    Render `duration_seconds` of FM audio into a mono 16-bit WAV.

    Parameters
    ----------
    params : SynthParameters
        Carrier / modulator frequency and modulation index.
    duration_seconds : float
        Output length; the sample count is round(sample_rate * duration).
    sample_rate : int
        Samples per second (written into the header).
    output_path : path or seekable binary stream
        Destination.  Paths are created / truncated.
    rounding : str
        "nearest" or "truncate" quantization.
    flush_every : int or None
        If set, back-patch the header every N samples so an interrupted run
        still leaves a readable file of everything written up to that point.

    Returns
    -------
    RenderResult

    Raises
    ------
    ValueError       invalid duration / sample rate / rounding / flush_every
    CreationFailure  destination cannot be opened
    WriteFailure     a write failed partway
    """
    if flush_every is not None and flush_every <= 0:
        raise ValueError(f"flush_every must be > 0, got {flush_every}")

    spec     = WavSpec(sample_rate=sample_rate)
    sequence = FMSampleSequence(params, sample_rate, duration_seconds)

    with WavWriter.create(output_path, spec, rounding=rounding) as writer:
        for sample in sequence:
            writer.write_sample(sample)
            if flush_every and writer.n_samples % flush_every == 0:
                writer.flush()
        writer.finalize()

    return RenderResult(
        path=writer.name,
        n_samples=writer.n_samples,
        data_bytes=writer.data_bytes,
        file_bytes=WAV_HEADER_BYTES + writer.data_bytes,
        spec=spec,
    )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def _non_negative_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")
    if not value >= 0.0 or value == float("inf"):
        raise argparse.ArgumentTypeError(f"must be a finite value >= 0, got {text}")
    return value


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {text}")
    return value


def _sample_rate(text: str) -> int:
    value = _positive_int(text)
    if value > MAX_SAMPLE_RATE:
        raise argparse.ArgumentTypeError(
            f"must be <= {MAX_SAMPLE_RATE} (32-bit byte rate field), got {text}"
        )
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fmse",
        description="Render a two-operator FM tone to a 16-bit mono WAV file.",
    )
    parser.add_argument(
        "--carrier", type=_non_negative_float, default=CARRIER_FREQ, metavar="HZ",
        help=f"Carrier frequency (tone A), default {CARRIER_FREQ}",
    )
    parser.add_argument(
        "--modulator", type=_non_negative_float, default=MODULATOR_FREQ, metavar="HZ",
        help=f"Modulator frequency (tone B), default {MODULATOR_FREQ}",
    )
    parser.add_argument(
        "--index", type=_non_negative_float, default=MODULATION_INDEX, metavar="I",
        help=f"Modulation index (depth of the FM effect), default {MODULATION_INDEX}",
    )
    parser.add_argument(
        "--duration", type=_non_negative_float, default=DURATION_SECONDS, metavar="S",
        help=f"Output length in seconds, default {DURATION_SECONDS}",
    )
    parser.add_argument(
        "--sample-rate", type=_sample_rate, default=SAMPLE_RATE, metavar="SR",
        help=f"Samples per second, default {SAMPLE_RATE}",
    )
    parser.add_argument(
        "-o", "--output", default=OUTPUT_PATH, metavar="PATH",
        help=f"Destination WAV file, default {OUTPUT_PATH}",
    )
    parser.add_argument(
        "--truncate", action="store_true",
        help="Quantize by truncation toward zero instead of round-to-nearest",
    )
    parser.add_argument(
        "--flush-every", type=_positive_int, default=None, metavar="N",
        help="Back-patch the header every N samples",
    )
    parser.add_argument(
        "--verify", action="store_true",
        help="Read the file back and check it against the requested render",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    params = SynthParameters(
        carrier_freq=args.carrier,
        modulator_freq=args.modulator,
        modulation_index=args.index,
    )
    rounding = ROUNDING_TRUNCATE if args.truncate else ROUNDING_NEAREST

    try:
        result = render_fm_wav(
            params,
            duration_seconds=args.duration,
            sample_rate=args.sample_rate,
            output_path=args.output,
            rounding=rounding,
            flush_every=args.flush_every,
        )
    except (WavEncoderError, OSError) as exc:
        print(f"[!!] {type(exc).__name__}: {exc}", file=sys.stderr)
        sys.exit(1)

    print(DIVIDER)
    print("  FM Synthesis Engine")
    print(DIVIDER)
    print(f"  Carrier   : {params.carrier_freq:g} Hz")
    print(f"  Modulator : {params.modulator_freq:g} Hz")
    print(f"  Index     : {params.modulation_index:g}")
    print(f"  Rate      : {result.spec.sample_rate} Hz, {result.spec.bits_per_sample}-bit, mono")
    print(f"  Samples   : {result.n_samples:,}  ({result.n_samples / result.spec.sample_rate:.3f} s)")
    print(f"  File size : {result.file_bytes:,} bytes  ({rounding} quantization)")
    print(DIVIDER)
    print(f"FM synthesis complete! Output written to {result.path}")

    if args.verify:
        from FMSE.SVM.wav_check import verify_wav, print_report

        report = verify_wav(
            os.fspath(args.output),
            params=params,
            duration_seconds=args.duration,
            sample_rate=args.sample_rate,
            rounding=rounding,
        )
        print_report(report)
        sys.exit(0 if report.passed else 1)


if __name__ == "__main__":
    main()
