# constants.py
"""
Application-level constants.

These values are static and do not change between simulation runs.
They are fundamental to the application's framework, such as the
simulation domain, default window sizes, rendering properties and the
fallback values used when the configuration file omits a parameter.
"""

# --- Simulation Domain ---
# The domain is the cube [DOMAIN_MIN, DOMAIN_MAX) on every axis.
DOMAIN_MIN = -1.0
DOMAIN_MAX = 1.0
# Particles farther apart than this never interact.
INTERACTION_RADIUS = 1.0
SPATIAL_DIMENSIONS = 3

# --- Parameter Defaults ---
DEFAULT_SIMULATION_PARAMETERS = {
    "particle_count": 1000,
    "color_count": 4,
    "seed": 42,
    "dt": 0.005,
    "beta": 0.3,
    "friction": 0.95,
    "matrix_policy": "identity",
    "wrap_mode": "teleport",
}

MATRIX_POLICIES = ("identity", "random", "explicit")
WRAP_MODES = ("teleport", "modulo")

# Spawn-key stream identifiers. Each random quantity is drawn from its own
# stream so that, e.g., particle 0 and palette color 0 never share numbers.
POSITION_STREAM = 0
PALETTE_STREAM = 1
MATRIX_STREAM = 2

# --- Visualization settings ---
# Set to True to run in borderless fullscreen mode.
# Set to False to run in a fixed-size window (1200x800).
FULLSCREEN = False
WINDOW_SIZE = (1200, 800)
UI_PANEL_WIDTH = 300
FPS = 60
BACKGROUND_COLOR = (24, 24, 24) # Dark Gray
DEFAULT_PARTICLE_RADIUS = 3

# Alpha value for the motion blur effect (0-255). Lower is a longer trail.
MOTION_BLUR_ALPHA = 60
# Alpha for the UI panel background
UI_BACKGROUND_ALPHA = 100

# --- Camera ---
# Distance from the camera to the domain centre, in domain units.
CAMERA_DISTANCE = 4.0
# Radians per frame of automatic orbit around the vertical axis.
CAMERA_AUTO_ROTATE = 0.003
# Radians per frame while an arrow key is held.
CAMERA_KEY_ROTATE = 0.03
