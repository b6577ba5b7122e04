"""Moderation policy constants.

Defaults for the tunable parts of the engine. Every value here is surfaced
through ``Settings`` so deployments can override it from the environment.
"""

from __future__ import annotations

# Admin id recorded on ledger entries written without a human reviewer
SYSTEM_ACTOR_ID = 0

# Appeals
APPEAL_DEADLINE_DAYS = 30
APPEAL_URGENT_DAYS_BEFORE_DEADLINE = 2
MAX_APPEAL_MESSAGE_LENGTH = 500
MAX_ADMIN_RESPONSE_LENGTH = 1000

# Flags
MAX_FLAG_DESCRIPTION_LENGTH = 500
FLAG_RATE_LIMIT_COUNT = 5
FLAG_RATE_LIMIT_WINDOW_HOURS = 24
URGENT_FLAG_AGE_HOURS = 72

# Blocked words
MAX_BLOCKED_WORD_LENGTH = 100

# Ledger
MAX_ACTION_REASON_LENGTH = 1000
AUTOMATIC_BAN_DURATION_DAYS = 7

# User restrictions derived from warning count
WARNINGS_BEFORE_LISTING_RESTRICTION = 3
WARNINGS_BEFORE_FLAG_RESTRICTION = 5

# Escalation ladder: prior infraction count -> (action type, ban duration in days)
ESCALATION_LADDER: dict[int, tuple[str, int | None]] = {
    0: ("WARNING", None),
    2: ("BAN", 1),
    3: ("BAN", 7),
    4: ("BAN", 30),
}

# ---- Risk scoring ----

# Decision thresholds on the aggregate risk score
RISK_BAN_THRESHOLD = 80
RISK_REMOVAL_THRESHOLD = 60
RISK_WARNING_THRESHOLD = 40
RISK_ESCALATE_THRESHOLD = 20

# Blocked-word contribution by severity band
BLOCKED_WORD_POINTS = {"critical": 40, "high": 25, "medium": 15, "low": 5}

# Spam
SPAM_CAPS_RATIO = 0.5
SPAM_CAPS_POINTS = 20
SPAM_REPEAT_RUN = 5
SPAM_REPEAT_POINTS = 15
SPAM_LOW_PRICE_USD = 1.0
SPAM_LOW_PRICE_POINTS = 10
SPAM_CONTACT_POINTS = 25
SPAM_FIRE_SCORE = 30
SPAM_HIGH_SCORE = 60

# Scam
SCAM_PHRASES = (
    "urgent sale",
    "must sell today",
    "no questions asked",
    "cash only",
    "overseas buyer",
    "shipping only",
    "western union",
    "money gram",
    "paypal friends",
    "inheritance",
    "lottery winner",
    "government grant",
)
SCAM_PHRASE_POINTS = 20
SCAM_HIGH_VALUE_CATEGORIES = ("electronics", "phones", "computers", "vehicles", "cars", "jewelry")
SCAM_HIGH_VALUE_ITEMS = ("iphone", "macbook", "ipad", "playstation", "rolex", "car")
SCAM_UNREALISTIC_PRICE_USD = 10.0
SCAM_PRICE_POINTS = 40
SCAM_URGENCY_WORDS = ("urgent", "hurry", "limited time", "today only", "expires")
SCAM_URGENCY_MIN_MATCHES = 2
SCAM_URGENCY_POINTS = 25
SCAM_FIRE_SCORE = 40
SCAM_HIGH_SCORE = 60
SCAM_CRITICAL_SCORE = 80

# Inappropriate content
ADULT_KEYWORDS = ("adult", "xxx", "porn", "sex", "escort", "massage")
ADULT_POINTS = 30
PROHIBITED_ITEMS = ("gun", "weapon", "drugs", "marijuana", "cocaine", "pills")
PROHIBITED_POINTS = 40
INAPPROPRIATE_FIRE_SCORE = 30
INAPPROPRIATE_HIGH_SCORE = 50
