"""Configuration constants for the next-best-view planner."""

# =============================================================================
# Information Metrics
# =============================================================================

# Metrics requested from the information gain estimator, in the order the
# returned values are interpreted
DEFAULT_METRIC_NAMES: tuple[str, ...] = (
    "NrOfUnknownVoxels",
    "AverageUncertainty",
    "AverageEndPointUncertainty",
    "UnknownObjectSideFrontier",
    "UnknownObjectVolumeFrontier",
    "ClassicFrontier",
    "EndNodeOccupancySum",
    "TotalOccupancyCertainty",
    "TotalNrOfOccupieds",
)

# Weight used for a metric that has no configured weight
DEFAULT_METRIC_WEIGHT: float = 0.0

# Weight of the movement cost term in the return
DEFAULT_COST_WEIGHT: float = 1.0

# =============================================================================
# Polling Intervals (seconds)
# =============================================================================

# Sleep between checks while waiting for the START command
START_POLL_INTERVAL: float = 0.5

# Sleep between attempts to reach the view space / current view services
SERVICE_POLL_INTERVAL: float = 2.0

# Sleep between attempts of data retrieval and move execution
RETRY_DELAY: float = 0.5

# Sleep between checks while paused
PAUSE_POLL_INTERVAL: float = 1.0

# =============================================================================
# Ray Casting Defaults
# =============================================================================

RAY_RESOLUTION_X: float = 0.5
RAY_RESOLUTION_Y: float = 0.5
RAY_STEP_SIZE: int = 2

# Image center and subwindow in pixels
IMAGE_CENTER_X: float = 376.0
IMAGE_CENTER_Y: float = 240.0
SUBWINDOW_WIDTH: float = 188.0
SUBWINDOW_HEIGHT: float = 120.0

MIN_RAY_DEPTH: float = 0.05
MAX_RAY_DEPTH: float = 1.5
OCCUPIED_PASSTHROUGH_THRESHOLD: float = 0.0

# =============================================================================
# Output
# =============================================================================

DATA_FILE_PREFIX: str = "planning_data"
DATA_FILE_SUFFIX: str = ".data"

# Sentinel cost of a candidate that cannot be reached
INVALID_COST: float = -1.0

# Tolerance on the quaternion norm before a pose is rejected
QUATERNION_NORM_TOLERANCE: float = 1e-3
