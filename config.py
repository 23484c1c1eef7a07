# Frame rate
FPS = 30

# Window
WIN_W = 720
WIN_H = 900
TITLE = "Blink Menu (close eyes to hold-select, Q=Quit)"

# Face-loss grace period (status text only, dwells cancel immediately)
FACE_LOSS_GRACE_SECONDS = 0.8

# Eye closure
EAR_THRESHOLD = 0.25
DEBOUNCE_MS = 100
EAR_SMOOTHING_FRAMES = 2

# User settings defaults / limits
DEFAULT_SCROLL_SPEED = 0.5
DEFAULT_BLINK_THRESHOLD = 0.3
DEFAULT_FOCUS_AREA_SIZE = 5
FOCUS_AREA_SIZES = (3, 5, 7, 9)
MIN_TIMING_SECONDS = 0.1
SETTING_STEP_SECONDS = 0.1

# Holds
MID_HOLD_FRACTION = 1.0 / 3.0
PLAY_AGAIN_HOLD_SECONDS = 0.5
EXIT_HOLD_SECONDS = 1.5

# SOS unlock: dot dot dot, dash dash dash, dot dot dot
SOS_DOT_SECONDS = 0.2
SOS_DASH_SECONDS = 1.0
SOS_PATTERN_SECONDS = (SOS_DOT_SECONDS,) * 3 + (SOS_DASH_SECONDS,) * 3 + (SOS_DOT_SECONDS,) * 3
SOS_OVERFILL_SECONDS = 0.5
SOS_TIMEOUT_SECONDS = 5.0

# Persistence
STORE_PATH = "blink_menu_store.json"
SETTINGS_KEY = "settings"
GAME_STATE_KEY = "minesweeperGameState"
