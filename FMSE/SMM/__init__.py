# =============================================================================
# FMSE/SMM/__init__.py — Signal Mapping Module
# =============================================================================
#
# The SMM is the single source of truth for the output format (sample rate,
# bit depth, channel count, PCM limits) and the default synthesis parameters.
#
# All other FMSE sub-modules import exclusively from here.
# Never define format constants outside this module.
#
# Sub-modules:
#   constants.py  — timing, format and default-parameter constants
# =============================================================================
