"""
Central location for constant values and tables used across the engine.
"""

# Insulin action (rapid-acting curve)
DIA_MINUTES = 240
INSULIN_PEAK_MINUTES = 75
ACTIVE_DOSE_EPSILON_U = 0.01

# Active-dose safety bands (units on board)
IOB_WARNING_U = 3.0
IOB_DANGEROUS_U = 5.0

# Forward simulation
SIMULATION_HORIZON_MINUTES = 240
SIMULATION_STEP_MINUTES = 15
CARB_PEAK_MINUTES = 60
CARB_ABSORPTION_END_MINUTES = 180
INSULIN_TAIL_FRACTION = 0.8
MGDL_PER_GRAM_CARB = 3.0
DEFAULT_BASELINE_MGDL = 120.0
BACK_TO_TARGET_TOLERANCE_MGDL = 10.0
SIMULATION_CONFIDENCE = 0.75

# Historical adjustment
MIN_SCENARIO_RECORDS = 10
SIMILAR_CARBS_G = 20.0
SIMILAR_HOURS = 2.0
NAIVE_CARB_RATIO = 15.0
MAX_LEARNED_FRACTION = 0.2
DEFAULT_SCENARIO_TARGET_MGDL = 120.0
# Used unless the request overrides it; the profile value is not consulted
LEARNING_CORRECTION_FACTOR = 50.0

# Meal period -> representative hour of day
TIME_OF_DAY_HOURS = {
    "breakfast": 7.0,
    "lunch": 12.0,
    "dinner": 18.0,
    "snack": 15.0,
}

# Safety thresholds
STACKING_IOB_U = 2.0
HYPO_THRESHOLD_MGDL = 70.0
HYPER_THRESHOLD_MGDL = 250.0
CARB_RATIO_MIN = 5.0
CARB_RATIO_MAX = 30.0

# Pre-bolus timing
PRE_BOLUS_BASE_MIN = 15
PRE_BOLUS_HIGH_BG_MIN = 20
PRE_BOLUS_HIGH_BG_MGDL = 180.0
PRE_BOLUS_LOW_BG_MGDL = 80.0
PRE_BOLUS_LOAD_STEP_MIN = 5
PRE_BOLUS_MAX_MIN = 30
LOW_LOAD_CARBS_G = 20.0
HIGH_LOAD_CARBS_G = 50.0

# Confidence scoring
BASE_CONFIDENCE = 0.85
NO_GLUCOSE_PENALTY = 0.10
NO_TARGET_PENALTY = 0.05
LARGE_MEAL_PENALTY = 0.10
LARGE_MEAL_CARBS_G = 100.0
MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 1.0

MGDL_PER_MMOL = 18.0
