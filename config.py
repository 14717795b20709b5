# config.py

# Ring Configuration
DISKS = 12               # Number of disks in the baseline scenario
WEIGHT = 160             # Virtual nodes (tokens) per disk
SLOTS_PER_WEIGHT = 4     # Slot-array length multiplier, keeps load factor at 1/4
DEFAULT_VARIANT = "sorted"
RING_VARIANTS = ["sorted", "slot"]

# Hashing
DEFAULT_HASH = "murmur3"
HASH_SEED = 0

# Simulation
NUM_FILES = 100000
LIMIT_FILES = 100        # Limit the number of files displayed
KEY_LENGTH = 15
RANDOM_SEED = 1234

DASHBOARD_PORT = 8000
