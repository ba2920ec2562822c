"""Tests for the read-back verifier (FMSE/SVM/wav_check.py) and the self-validation suite."""

import struct

import numpy as np
import pytest

from FMSE.SGM.fm_synth import SynthParameters
from FMSE.SGM.render import render_fm_wav
from FMSE.SGM.wav_encoder import WavSpec, build_header
from FMSE.SVM import validate
from FMSE.SVM.wav_check import (
    WavHeader,
    expected_pcm,
    main,
    read_header,
    verify_wav,
)


@pytest.fixture
def short_render(tmp_path):
    path = tmp_path / "short.wav"
    params = SynthParameters(440.0, 220.0, 100.0)
    render_fm_wav(params, 0.25, 44_100, path)
    return path, params


def _failed(report):
    return [c.label for c in report.checks if not c.passed]


class TestReadHeader:
    def test_canonical_header(self, short_render):
        path, _ = short_render
        h = read_header(str(path))
        assert isinstance(h, WavHeader)
        assert h.format_tag == 1
        assert h.channels == 1
        assert h.sample_rate == 44_100
        assert h.byte_rate == 88_200
        assert h.block_align == 2
        assert h.bits_per_sample == 16
        assert h.data_offset == 44
        assert h.data_size == 11_025 * 2
        assert h.file_size == 44 + 11_025 * 2
        assert h.riff_size == h.file_size - 8

    def test_skips_unknown_chunks(self, tmp_path):
        pcm = struct.pack("<3h", 1, 2, 3)
        riff = build_header(WavSpec(), len(pcm))
        list_chunk = b"LIST" + struct.pack("<I", 5) + b"INFOx" + b"\x00"
        raw = riff[:36] + list_chunk + riff[36:] + pcm
        raw = raw[:4] + struct.pack("<I", len(raw) - 8) + raw[8:]
        path = tmp_path / "list.wav"
        path.write_bytes(raw)

        h = read_header(str(path))
        assert h.data_offset == 44 + len(list_chunk)
        assert h.data_size == 6

    @pytest.mark.parametrize(
        "raw",
        [
            b"",
            b"RIFX" + b"\x00" * 40,
            b"RIFF\x00\x00\x00\x00WAVX" + b"\x00" * 32,
            b"RIFF\x04\x00\x00\x00WAVE",
        ],
    )
    def test_rejects_malformed(self, tmp_path, raw):
        path = tmp_path / "bad.wav"
        path.write_bytes(raw)
        with pytest.raises(ValueError):
            read_header(str(path))


class TestExpectedPcm:
    def test_first_sample_zero(self):
        pcm = expected_pcm(SynthParameters(), 44_100, 10)
        assert pcm.dtype == np.int16
        assert pcm[0] == 0

    def test_full_scale(self):
        # fc = sr / 4: each sample advances the carrier a quarter cycle
        pcm = expected_pcm(SynthParameters(11_025.0, 0.0, 0.0), 44_100, 4)
        assert list(pcm) == [0, 32_767, 0, -32_768]

    def test_rejects_unknown_rounding(self):
        with pytest.raises(ValueError):
            expected_pcm(SynthParameters(), 44_100, 10, "ceil")


class TestVerifyWav:
    def test_render_passes(self, short_render):
        path, params = short_render
        report = verify_wav(str(path), params, 0.25, 44_100)
        assert report.passed, _failed(report)
        assert len(report.checks) == 13

    def test_header_only(self, short_render):
        path, _ = short_render
        report = verify_wav(str(path), None, 0.25, 44_100)
        assert report.passed
        assert len(report.checks) == 9

    def test_wrong_duration_fails(self, short_render):
        path, params = short_render
        report = verify_wav(str(path), params, 0.5, 44_100)
        assert not report.passed
        assert "Sample count = 22,050" in _failed(report)

    def test_wrong_params_fail_sample_match(self, short_render):
        path, _ = short_render
        report = verify_wav(str(path), SynthParameters(440.0, 220.0, 3.0), 0.25, 44_100)
        assert _failed(report) == ["Samples match generator (±1 LSB)"]

    def test_truncated_file_fails(self, short_render):
        path, params = short_render
        raw = path.read_bytes()
        path.write_bytes(raw[:-100])
        report = verify_wav(str(path), None, 0.25, 44_100)
        failed = _failed(report)
        assert "RIFF size = file size - 8" in failed
        assert "Data chunk fully present" in failed

    def test_lying_sample_rate_fails(self, short_render):
        path, _ = short_render
        raw = bytearray(path.read_bytes())
        struct.pack_into("<I", raw, 24, 48_000)
        path.write_bytes(bytes(raw))
        failed = _failed(verify_wav(str(path), None, 0.25, 44_100))
        assert "Sample rate = 44100" in failed
        assert "Byte rate = sample rate * block align" in failed

    def test_truncate_rounding(self, tmp_path):
        path = tmp_path / "t.wav"
        params = SynthParameters(440.0, 220.0, 100.0)
        render_fm_wav(params, 0.1, 44_100, path, rounding="truncate")
        report = verify_wav(str(path), params, 0.1, 44_100, rounding="truncate")
        assert report.passed, _failed(report)


class TestCli:
    def test_pass_verdict(self, short_render, capsys):
        path, _ = short_render
        with pytest.raises(SystemExit) as exc:
            main([str(path), "--duration", "0.25"])
        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert "[PASS] Channels = 1" in out
        assert "VERDICT: PASS" in out

    def test_fail_verdict(self, short_render, capsys):
        path, _ = short_render
        with pytest.raises(SystemExit) as exc:
            main([str(path), "--duration", "0.25", "--index", "0"])
        assert exc.value.code == 1
        assert "VERDICT: FAIL" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            main([str(tmp_path / "absent.wav")])
        assert exc.value.code == 1
        assert "File not found" in capsys.readouterr().err

    def test_unparseable_file(self, tmp_path, capsys):
        path = tmp_path / "junk.wav"
        path.write_bytes(b"not audio at all")
        with pytest.raises(SystemExit) as exc:
            main([str(path), "--header-only"])
        assert exc.value.code == 1
        assert "Cannot verify" in capsys.readouterr().err


class TestSelfValidation:
    def test_validate_suite_passes(self, capsys):
        assert validate.main() == 0
        assert "ALL TESTS PASSED" in capsys.readouterr().out
