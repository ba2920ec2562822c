# =============================================================================
# constants.py — SMM Format Constants and Synthesis Defaults
# =============================================================================
#
# Output format is canonical 16-bit mono PCM WAV.  DO NOT change the format
# values without updating the header layout in SGM/wav_encoder.py.

# -----------------------------------------------------------------------------
# OUTPUT FORMAT
# -----------------------------------------------------------------------------

SAMPLE_RATE      = 44_100       # Hz — CD-rate, accepted by every PCM decoder
CHANNELS         = 1            # mono
BITS_PER_SAMPLE  = 16           # signed integer PCM
SAMPLE_FORMAT    = "int"        # only integer PCM is written
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8   # = 2

SUPPORTED_BIT_DEPTHS = {16}
SUPPORTED_SAMPLE_FORMATS = {"int"}

# PCM amplitude limits (16-bit signed).  The scale is asymmetric:
#   positive samples scale by PCM_MAX  →  +1.0 → 32767
#   negative samples scale by -PCM_MIN →  -1.0 → -32768
PCM_MAX =  32767
PCM_MIN = -32768

# -----------------------------------------------------------------------------
# RIFF / WAVE LAYOUT
# -----------------------------------------------------------------------------
#   offset  size  field
#        0     4  "RIFF"
#        4     4  RIFF size = 36 + data size        ← back-patched
#        8     4  "WAVE"
#       12     4  "fmt "
#       16     4  fmt chunk size = 16
#       20     2  format tag = 1 (PCM)
#       22     2  channels
#       24     4  sample rate
#       28     4  byte rate  = sample_rate * block_align
#       32     2  block align = channels * bits / 8
#       34     2  bits per sample
#       36     4  "data"
#       40     4  data size = n_samples * bytes/sample   ← back-patched

WAVE_FORMAT_PCM   = 1
FMT_CHUNK_SIZE    = 16
WAV_HEADER_BYTES  = 44
RIFF_SIZE_OFFSET  = 4
DATA_SIZE_OFFSET  = 40
RIFF_OVERHEAD     = WAV_HEADER_BYTES - 8    # = 36, bytes counted by RIFF size
U32_MAX           = 0xFFFF_FFFF                 # every size / rate field is a uint32
MAX_DATA_BYTES    = U32_MAX - RIFF_OVERHEAD     # 32-bit RIFF size limit

# -----------------------------------------------------------------------------
# QUANTIZATION
# -----------------------------------------------------------------------------
# "nearest"  — round to nearest (default, standard PCM convention)
# "truncate" — drop the fraction toward zero (plain float→int cast)

ROUNDING_NEAREST  = "nearest"
ROUNDING_TRUNCATE = "truncate"
ROUNDING_MODES    = (ROUNDING_NEAREST, ROUNDING_TRUNCATE)

# -----------------------------------------------------------------------------
# DEFAULT SYNTHESIS PARAMETERS
# -----------------------------------------------------------------------------
# A4 carrier modulated by A3.  An index of 100 gives a dense, clangorous
# spectrum; 0 gives a pure 440 Hz tone.

CARRIER_FREQ     = 440.0        # Hz (tone A)
MODULATOR_FREQ   = 220.0        # Hz (tone B)
MODULATION_INDEX = 100.0        # dimensionless
DURATION_SECONDS = 5.0          # s  → 220,500 samples at 44.1 kHz
OUTPUT_PATH      = "fm_synth.wav"
