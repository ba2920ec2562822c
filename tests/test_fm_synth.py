"""Tests for the FM sample generator (FMSE/SGM/fm_synth.py)."""

import math

import numpy as np
import pytest

from FMSE.SGM.fm_synth import (
    FMSampleSequence,
    SynthParameters,
    generate,
    render_block,
    sample_time,
    total_samples,
)


class TestGenerate:
    def test_first_sample_is_zero(self, default_params):
        assert generate(default_params, 0.0) == 0.0

    @pytest.mark.parametrize(
        "params",
        [
            SynthParameters(440.0, 220.0, 100.0),
            SynthParameters(1000.0, 3.0, 2.5),
            SynthParameters(55.0, 1760.0, 1e6),
            SynthParameters(0.5, 0.25, 0.0),
        ],
    )
    def test_range_within_unit_interval(self, params):
        for t in np.linspace(-3.0, 3.0, 2_001):
            assert -1.0 <= generate(params, float(t)) <= 1.0

    def test_deterministic(self, default_params):
        times = [n / 44_100 for n in range(0, 44_100, 37)]
        first = [generate(default_params, t) for t in times]
        second = [generate(default_params, t) for t in times]
        assert first == second

    def test_zero_index_is_pure_carrier(self):
        params = SynthParameters(440.0, 220.0, 0.0)
        for t in (0.0, 1 / 44_100, 0.123, 2.5, 4.99):
            assert generate(params, t) == math.sin(2 * math.pi * 440.0 * t)

    def test_zero_frequencies_are_silent(self):
        params = SynthParameters(0.0, 0.0, 100.0)
        for t in (0.0, 0.5, 1.75, 100.0):
            assert generate(params, t) == 0.0

    def test_modulator_shifts_carrier_phase(self):
        # At t = 1/(4*fm) the modulator is at its peak, so the carrier phase
        # is advanced by exactly the modulation index.
        params = SynthParameters(440.0, 220.0, 0.75)
        t = 1 / (4 * 220.0)
        expected = math.sin(2 * math.pi * 440.0 * t + 0.75 * math.sin(2 * math.pi * 220.0 * t))
        assert generate(params, t) == expected

    def test_defaults_match_reference_tone(self):
        assert SynthParameters() == SynthParameters(440.0, 220.0, 100.0)


class TestTotalSamples:
    def test_five_seconds_at_cd_rate(self):
        assert total_samples(44_100, 5.0) == 220_500

    def test_rounds_to_nearest(self):
        assert total_samples(44_100, 0.00001) == 0
        assert total_samples(44_100, 0.0000114) == 1
        assert total_samples(8_000, 0.0001874) == 1

    def test_zero_duration(self):
        assert total_samples(44_100, 0.0) == 0

    @pytest.mark.parametrize("rate", [0, -44_100])
    def test_rejects_non_positive_rate(self, rate):
        with pytest.raises(ValueError):
            total_samples(rate, 1.0)

    @pytest.mark.parametrize("duration", [-0.5, float("nan"), float("inf")])
    def test_rejects_bad_duration(self, duration):
        with pytest.raises(ValueError):
            total_samples(44_100, duration)

    def test_sample_time(self):
        assert sample_time(0) == 0.0
        assert sample_time(44_100) == 1.0
        assert sample_time(4_000, 8_000) == 0.5


class TestFMSampleSequence:
    def test_length(self, default_params):
        assert len(FMSampleSequence(default_params, 44_100, 5.0)) == 220_500

    def test_restartable(self, default_params):
        seq = FMSampleSequence(default_params, 44_100, 0.05)
        assert list(seq) == list(seq)

    def test_elements_depend_only_on_index(self, default_params):
        seq = FMSampleSequence(default_params, 44_100, 0.05)
        values = list(seq)
        for n in (0, 1, 100, len(seq) - 1):
            assert seq[n] == values[n] == generate(default_params, n / 44_100)

    def test_negative_index_wraps(self, default_params):
        seq = FMSampleSequence(default_params, 44_100, 0.01)
        assert seq[-1] == seq[len(seq) - 1]

    def test_out_of_range_index(self, default_params):
        seq = FMSampleSequence(default_params, 44_100, 0.01)
        with pytest.raises(IndexError):
            seq[len(seq)]
        with pytest.raises(IndexError):
            seq[-len(seq) - 1]

    def test_empty_sequence(self, default_params):
        seq = FMSampleSequence(default_params, 44_100, 0.0)
        assert len(seq) == 0
        assert list(seq) == []

    def test_duration(self, default_params):
        assert FMSampleSequence(default_params, 44_100, 5.0).duration == 5.0


class TestRenderBlock:
    def test_agrees_with_generate(self, default_params):
        block = render_block(default_params, 44_100, 0, 4_410)
        scalar = [generate(default_params, n / 44_100) for n in range(4_410)]
        assert block.dtype == np.float64
        assert np.max(np.abs(block - np.array(scalar))) < 1e-9

    def test_offset_block(self, default_params):
        whole = render_block(default_params, 44_100, 0, 2_000)
        tail = render_block(default_params, 44_100, 1_500, 500)
        assert np.allclose(whole[1_500:], tail, rtol=0, atol=1e-12)

    def test_rejects_negative_count(self, default_params):
        with pytest.raises(ValueError):
            render_block(default_params, 44_100, 0, -1)
