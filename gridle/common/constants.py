SEED_PREFIX = "GRIDLE|"

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
MULBERRY_INCREMENT = 0x6D2B79F5
UINT32_MASK = 0xFFFFFFFF

MIN_COLS = 12
MAX_COLS = 20
MIN_ROWS = 24
MAX_ROWS = 48
MIN_OPPONENTS = 1
MAX_OPPONENTS = 8
MIN_TICKS_PER_SECOND = 14
MAX_TICKS_PER_SECOND = 21
CELLS_PER_EXTRA_OPPONENT = 240

RANDOM_TURN_PROB = 0.03

PLAYER_COLOR = "#00f3ff"
OPPONENT_PALETTE = (
    "#f44336",
    "#ffd600",
    "#00e676",
    "#00e5ff",
    "#d500f9",
    "#ff6d00",
    "#29b6f6",
)
PLAYER_SPAWN_X_FRACTION = 0.3
PLAYER_SPAWN_Y_FRACTION = 0.18
OPPONENT_SPAWN_Y_FRACTION = 0.45
OPPONENT_SPAWN_ATTEMPTS = 200
OPPONENT_MIN_SPACING = 6
