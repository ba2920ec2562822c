# =============================================================================
# FMSE/SVM/__init__.py — Signal Verification Module
# =============================================================================
#
# The SVM contains the tools for checking that a rendered WAV file matches
# what was requested before it is handed to anything else.
#
# Sub-modules:
#   wav_check.py  — parses the RIFF header and decodes the samples back
#                   (soundfile + numpy), comparing against the generator
#   validate.py   — automated self-test for the entire FMSE stack
# =============================================================================
