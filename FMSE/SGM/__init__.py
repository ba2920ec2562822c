# =============================================================================
# SGM — Signal Generation Module
# Subfolder of FMSE (FM Synthesis Engine)
# =============================================================================
#
# Generates a deterministic FM waveform and writes it as 16-bit PCM WAV.
#
# Modules:
#   fm_synth.py    — FM sample generator (pure function of n)
#   wav_encoder.py — WAV container writer with back-patched header
#   render.py      — generator → encoder pipeline + `fmse` CLI
#
# Constants live in FMSE/SMM/constants.py
# Verification tools live in FMSE/SVM/
# =============================================================================
