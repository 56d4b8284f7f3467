"""Default constants and configuration values."""

# Frame loop
DEFAULT_FPS_CAP = 60
DEFAULT_LOG_INTERVAL_S = 0.5

# Analyzer
DEFAULT_LEVELS_COUNT = 6
DEFAULT_TRANSFORM_SIZE = 512
DEFAULT_WINDOW_SIZE = 10
DEFAULT_PEAK_DECAY_RATE = 0.01
DEFAULT_PEAK_FLOOR = 0.1

# Spectrum (analyser node emulation)
DEFAULT_SMOOTHING_TIME_CONSTANT = 0.3
DEFAULT_MIN_DECIBELS = -100.0
DEFAULT_MAX_DECIBELS = -30.0
MIN_FFT_SIZE = 32
MAX_FFT_SIZE = 32768

# Byte-range sample data
BYTE_FULL_SCALE = 256
BYTE_CENTER = 128

# Input
DEFAULT_SAMPLE_RATE = 44100
DEFAULT_CHUNK_MS = 20

# Input sources
INPUT_FILE = "file"
INPUT_MIC = "mic"

# Visuals
DEFAULT_NOISE_MAX = 1.0
