"""
Constants for the content personalization system.
"""

from pathlib import Path

MODULE_ROOT = Path(__file__).parent

DB_NAME = "personalization.db"

# Relevance weights, summing to 1.0
FACTOR_WEIGHTS = {
    "style_match": 0.25,
    "difficulty_match": 0.20,
    "topic_interest": 0.30,
    "timing_optimal": 0.10,
    "language_match": 0.15,
}

# Recommendation ranking blend
RELEVANCE_RANK_WEIGHT = 0.7
ENGAGEMENT_RANK_WEIGHT = 0.3

STYLE_EXACT_SCORE = 1.0
STYLE_COMPATIBLE_SCORE = 0.6
STYLE_DEFAULT_SCORE = 0.2

DIFFICULTY_EXACT_SCORE = 1.0
DIFFICULTY_ONE_ABOVE_SCORE = 0.8
DIFFICULTY_ONE_BELOW_SCORE = 0.7
DIFFICULTY_STEP_PENALTY = 0.3
DIFFICULTY_MIN_SCORE = 0.2

TOPIC_BASE_SCORE = 0.5
TOPIC_TAG_WEIGHT = 0.5
TOPIC_FORMAT_BONUS = 0.3

TIMING_EXACT_SCORE = 1.0
TIMING_NEAR_SCORE = 0.7
TIMING_OFF_SCORE = 0.3
TIMING_NEAR_HOURS = 2

# Used when click rate or historical engagement is missing
ENGAGEMENT_FALLBACK = 0.05

BEST_SEND_TIME_COUNT = 2
DEFAULT_SEND_TIME = "09:00"

# View-based preference learning: existing weights decay on every view
VIEW_WEIGHT_DECAY = 0.9
VIEW_WEIGHT_INCREMENT = 1.0
MIN_TRACKED_WEIGHT = 0.05
MOST_VIEWED_CATEGORY_COUNT = 5

NEWSLETTER_RECOMMENDATION_LIMIT = 5
MAX_PLANT_TIPS = 3
DEFAULT_NEWSLETTER_TOPIC = "Aquascaping"

HIGH_ENGAGEMENT_THRESHOLD = 0.3
LOW_ENGAGEMENT_THRESHOLD = 0.1
RECENT_SIGNUP_DAYS = 30
LONG_TIME_SUBSCRIBER_DAYS = 365

DEFAULT_HOMEPAGE_LIMIT = 6
