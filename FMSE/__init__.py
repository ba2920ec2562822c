# =============================================================================
# FM Synthesis Engine (FMSE)
# =============================================================================
#
# ── OFFLINE, DETERMINISTIC, SINGLE PASS ──────────────────────────────────────
#
# RESPONSIBLE for:
#   - Two-operator FM synthesis
#       y(t) = sin(2π·fc·t + I·sin(2π·fm·t))
#       Every sample is a pure function of its index n (t = n / SAMPLE_RATE).
#       No accumulated phase, so the stream is restartable at any index.
#   - 16-bit PCM quantization
#       Clamp to [-1, 1], then scale to [-32768, 32767]. 1.0 never overflows.
#   - WAV container construction
#       Canonical 44-byte RIFF/WAVE header, length fields back-patched from the
#       number of samples actually written.
#   - Read-back verification of produced files
#
# NOT responsible for:
#   - Playback, stereo synthesis, envelopes / LFOs, compressed formats
#
# ── DATA FLOW ─────────────────────────────────────────────────────────────────
#   CLI / caller → SynthParameters + duration + sample rate
#   SGM.fm_synth → one float per index n, in [-1.0, 1.0]
#   SGM.wav_encoder → quantize → "<h" little-endian → data chunk
#   finalize     → RIFF size + data size back-patched → file valid
#
# ── Module layout ─────────────────────────────────────────────────────────────
#   SMM/constants.py    — sample rate, bit depth, defaults (single source)
#   SGM/fm_synth.py     — SynthParameters, generate(), FMSampleSequence
#   SGM/wav_encoder.py  — WavSpec, WavWriter, quantize(), error taxonomy
#   SGM/render.py       — render_fm_wav() + `fmse` CLI
#   SVM/wav_check.py    — header parser + round-trip verifier (CLI)
#   SVM/validate.py     — self-validation suite
# =============================================================================

__version__ = "1.0.0"
