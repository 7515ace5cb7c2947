from __future__ import annotations

# Leases
DEFAULT_LEASE_TTL_SECONDS = 300
DEFAULT_LEASE_SWEEP_SECONDS = 60

# Cooldowns (seconds)
CHAT_COOLDOWN_SECONDS = 3
TICKET_CREATE_COOLDOWN_SECONDS = 30
DEFAULT_COMMAND_COOLDOWN_SECONDS = 3
XP_COOLDOWN_SECONDS = 60
LEADERBOARD_PAGE_COOLDOWN_SECONDS = 1

# Conversation memory
DEFAULT_CHAT_TOKEN_BUDGET = 2000
DEFAULT_CHAT_MAX_ENTRIES = 300
DEFAULT_CHAT_MAX_USERS = 200
DEFAULT_CHAT_KEEP_USERS = 100

# LLM
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_CHAT_MAX_TOKENS = 400
DEFAULT_CHAT_TEMPERATURE = 0.8
VIP_CHAT_TEMPERATURE = 0.7
DEFAULT_LLM_MAX_RETRIES = 2
DEFAULT_LLM_BACKOFF_BASE_SECONDS = 2.0

# Rendering
DISCORD_MAX_MESSAGE_LEN = 1900

# Guild defaults
DEFAULT_AI_TRIGGER_SYMBOL = "!"
DEFAULT_AI_PERSONALITY = "friendly"
AI_PERSONALITIES = ("friendly", "professional", "casual", "funny")
DEFAULT_EMBED_COLOR = 0x5865F2

# Settings cache
DEFAULT_SETTINGS_CACHE_TTL_SECONDS = 300

# Tickets
TICKET_CHANNEL_PREFIX = "ticket-"
TICKET_CLOSE_DELAY_SECONDS = 10
TICKET_MAX_STAFF_ROLES = 5

# Moderation
DEFAULT_WARNING_TTL_DAYS = 30
MOD_LOG_RETENTION_DAYS = 30
AUTOMOD_MAX_MESSAGE_CHARS = 500
AUTOMOD_REPEAT_RUN = 5
AUTOMOD_MAX_MENTIONS = 5
AUTOMOD_CAPS_RATIO = 0.7
AUTOMOD_CAPS_MIN_LENGTH = 10
AUTOMOD_LINK_WHITELIST = ("discord.gg", "discord.com", "youtube.com", "youtu.be", "github.com")

# Levels
XP_MIN_GAIN = 15
XP_MAX_GAIN = 25
LEADERBOARD_PAGE_SIZE = 10
CHANNEL_HISTORY_KEEP = 100

# Maintenance
DEFAULT_MAINTENANCE_INTERVAL_SECONDS = 3600
COOLDOWN_SWEEP_MAX_AGE_SECONDS = 3600

# Giveaways
GIVEAWAY_ENTER_COOLDOWN_SECONDS = 2
GIVEAWAY_MAX_WINNERS = 20
GIVEAWAY_MAX_DURATION_MINUTES = 40320
DEFAULT_GIVEAWAY_SWEEP_SECONDS = 30

# Self roles
SELF_ROLE_MAX_OPTIONS = 25
