# =============================================================================
# fm_synth.py — Two-Operator FM Sample Generator
# =============================================================================
#
# One sine oscillator (the modulator) perturbs the instantaneous phase of a
# second one (the carrier):
#
#     modulator(t) = sin(2π · fm · t)
#     y(t)         = sin(2π · fc · t + I · modulator(t))
#
# TIMING GUARANTEE:
#   Sample n is evaluated at t = n / sample_rate, computed fresh for every n.
#   There is no running phase accumulator, so nothing drifts over long renders
#   and any index can be evaluated on its own (restartable, random access).
#
# RANGE:
#   y(t) is a sine of a real argument, so it is always inside [-1.0, 1.0].
#   The encoder still clamps before quantizing.

from __future__ import annotations

import math
from typing import Iterator, NamedTuple

import numpy as np

from FMSE.SMM.constants import (
    CARRIER_FREQ, MODULATOR_FREQ, MODULATION_INDEX,
    SAMPLE_RATE,
)

TWO_PI = 2.0 * math.pi


class SynthParameters(NamedTuple):
    carrier_freq:     float = CARRIER_FREQ       # Hz — perceived pitch
    modulator_freq:   float = MODULATOR_FREQ     # Hz — phase perturbation rate
    modulation_index: float = MODULATION_INDEX   # depth of the FM effect


def generate(params: SynthParameters, t: float) -> float:
    """
    Evaluate the FM waveform at time `t` (seconds).

    Total over every real `t` and every parameter value.  Zero frequencies or
    a zero index are valid and give silence or a pure carrier respectively.
    """
    modulator = math.sin(TWO_PI * params.modulator_freq * t)
    return math.sin(TWO_PI * params.carrier_freq * t + params.modulation_index * modulator)


def sample_time(n: int, sample_rate: int = SAMPLE_RATE) -> float:
    """Elapsed time in seconds of sample index `n`."""
    return n / sample_rate


def total_samples(sample_rate: int, duration_seconds: float) -> int:
    """
    Number of samples in a render of `duration_seconds` at `sample_rate`.

    Args:
        sample_rate:      Samples per second, must be > 0.
        duration_seconds: Output length, must be finite and >= 0.

    Returns:
        round(sample_rate * duration_seconds)  — e.g. 44100 * 5.0 = 220500
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be > 0, got {sample_rate!r}")
    if not math.isfinite(duration_seconds) or duration_seconds < 0:
        raise ValueError(
            f"duration_seconds must be finite and >= 0, got {duration_seconds!r}"
        )
    return int(round(sample_rate * duration_seconds))


class FMSampleSequence:
    """
    Lazy, finite, restartable sequence of normalized FM samples.

    Nothing is materialised: each element is computed on demand from its
    index, so memory stays O(1) regardless of duration and iterating twice
    yields identical values.

    Example:
        seq = FMSampleSequence(SynthParameters(), 44_100, 5.0)
        len(seq)        # 220500
        seq[0]          # 0.0
        for s in seq:   # 220500 floats in [-1.0, 1.0]
            ...
    """

    def __init__(
        self,
        params: SynthParameters,
        sample_rate: int = SAMPLE_RATE,
        duration_seconds: float = 0.0,
    ) -> None:
        self.params      = params
        self.sample_rate = sample_rate
        self._length     = total_samples(sample_rate, duration_seconds)

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[float]:
        params = self.params
        sr     = self.sample_rate
        for n in range(self._length):
            yield generate(params, n / sr)

    def __getitem__(self, n: int) -> float:
        if n < 0:
            n += self._length
        if not 0 <= n < self._length:
            raise IndexError(f"sample index out of range: {n}")
        return generate(self.params, n / self.sample_rate)

    @property
    def duration(self) -> float:
        """Exact duration in seconds of the samples this sequence produces."""
        return self._length / self.sample_rate


def render_block(
    params: SynthParameters,
    sample_rate: int,
    start: int,
    count: int,
) -> np.ndarray:
    """
    Vectorised evaluation of samples [start, start + count).

    Same formula as generate(), evaluated with numpy over a whole index range.
    Used where the full expected waveform is needed at once (verification);
    the render path itself stays sample-by-sample.

    Returns:
        float64 array of length `count`.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    t = np.arange(start, start + count, dtype=np.float64) / sample_rate
    modulator = np.sin(TWO_PI * params.modulator_freq * t)
    return np.sin(TWO_PI * params.carrier_freq * t + params.modulation_index * modulator)
