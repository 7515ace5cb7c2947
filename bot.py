import os
import sqlite3
import asyncio
import random
import discord
from discord.ext import commands
from openai import OpenAI
from chat.games import default_games_path
from chat.games import load_game_catalog
from chat.llm import OpenAIChatProvider
from chat.memory import ConversationMemory
from chat.service import ChatService
from config.defaults import CHANNEL_HISTORY_KEEP
from config.defaults import CHAT_COOLDOWN_SECONDS
from config.defaults import DEFAULT_CHAT_KEEP_USERS
from config.defaults import DEFAULT_CHAT_MAX_ENTRIES
from config.defaults import DEFAULT_CHAT_MAX_TOKENS
from config.defaults import DEFAULT_CHAT_MAX_USERS
from config.defaults import DEFAULT_CHAT_TOKEN_BUDGET
from config.defaults import DEFAULT_COMMAND_COOLDOWN_SECONDS
from config.defaults import DEFAULT_GIVEAWAY_SWEEP_SECONDS
from config.defaults import DEFAULT_LEASE_SWEEP_SECONDS
from config.defaults import DEFAULT_LEASE_TTL_SECONDS
from config.defaults import DEFAULT_LLM_BACKOFF_BASE_SECONDS
from config.defaults import DEFAULT_LLM_MAX_RETRIES
from config.defaults import DEFAULT_MAINTENANCE_INTERVAL_SECONDS
from config.defaults import DEFAULT_OPENAI_MODEL
from config.defaults import DEFAULT_SETTINGS_CACHE_TTL_SECONDS
from config.defaults import DEFAULT_WARNING_TTL_DAYS
from config.defaults import DISCORD_MAX_MESSAGE_LEN
from config.defaults import GIVEAWAY_ENTER_COOLDOWN_SECONDS
from config.defaults import LEADERBOARD_PAGE_COOLDOWN_SECONDS
from config.defaults import TICKET_CLOSE_DELAY_SECONDS
from config.defaults import TICKET_CREATE_COOLDOWN_SECONDS
from config.defaults import XP_COOLDOWN_SECONDS
from config.env import env_float
from config.env import env_int
from config.env import parse_id_set
from db.migrate import apply_sqlite_migrations
from db.migrate import list_schema_migrations_sync
from giveaways.service import GiveawayService
from levels.service import LevelService
from misc.discord_gates import user_is_owner as user_is_owner_gate
from misc.runtime_wiring import wire_bot_runtime
from moderation.service import ModerationService
from runtime.leases import LeaseManager
from runtime.rate_limit import RateLimiter
from selfroles.service import SelfRoleService
from settings.service import SettingsService
from tickets.service import TicketService

# =========================
# ENV
# =========================
DISCORD_TOKEN = (os.getenv("DISCORD_TOKEN") or "").strip()
OPENAI_API_KEY = (os.getenv("OPENAI_API_KEY") or "").strip()

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")
if not OPENAI_API_KEY:
    raise RuntimeError("Missing OPENAI_API_KEY env var")

OPENAI_MODEL = os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL).strip() or DEFAULT_OPENAI_MODEL

# Persistent path (point this at a mounted volume in production)
DB_PATH = os.getenv("GUILDKEEPER_DB_PATH", "guildkeeper.db")

OWNER_USER_IDS = parse_id_set(os.getenv("GUILDKEEPER_OWNER_USER_IDS"))
VIP_USER_IDS = parse_id_set(os.getenv("GUILDKEEPER_VIP_USER_IDS"))

CHAT_TOKEN_BUDGET = env_int("GUILDKEEPER_CHAT_TOKEN_BUDGET", DEFAULT_CHAT_TOKEN_BUDGET, minimum=1)
CHAT_MAX_ENTRIES = env_int("GUILDKEEPER_CHAT_MAX_ENTRIES", DEFAULT_CHAT_MAX_ENTRIES, minimum=2)
CHAT_MAX_USERS = env_int("GUILDKEEPER_CHAT_MAX_USERS", DEFAULT_CHAT_MAX_USERS, minimum=1)
CHAT_KEEP_USERS = env_int("GUILDKEEPER_CHAT_KEEP_USERS", DEFAULT_CHAT_KEEP_USERS, minimum=1)
if CHAT_KEEP_USERS > CHAT_MAX_USERS:
    print(f"[CFG] GUILDKEEPER_CHAT_KEEP_USERS={CHAT_KEEP_USERS} exceeds max users; clamping to {CHAT_MAX_USERS}")
    CHAT_KEEP_USERS = CHAT_MAX_USERS

LEASE_TTL_SECONDS = env_float("GUILDKEEPER_LEASE_TTL_SECONDS", DEFAULT_LEASE_TTL_SECONDS, minimum=1.0)
SETTINGS_CACHE_TTL_SECONDS = env_float(
    "GUILDKEEPER_SETTINGS_CACHE_TTL_SECONDS", DEFAULT_SETTINGS_CACHE_TTL_SECONDS, minimum=0.0
)
MAINTENANCE_INTERVAL_SECONDS = env_int(
    "GUILDKEEPER_MAINTENANCE_INTERVAL_SECONDS", DEFAULT_MAINTENANCE_INTERVAL_SECONDS, minimum=60
)
GAMES_PATH = os.getenv("GUILDKEEPER_GAMES_PATH", default_games_path())

GAME_CATALOG, GAMES_WARNING = load_game_catalog(GAMES_PATH)
if GAMES_WARNING:
    print(f"[CFG] {GAMES_WARNING}")

print(
    f"[CFG] model={OPENAI_MODEL} token_budget={CHAT_TOKEN_BUDGET} "
    f"caps=entries:{CHAT_MAX_ENTRIES}/users:{CHAT_MAX_USERS}/keep:{CHAT_KEEP_USERS} "
    f"lease_ttl={LEASE_TTL_SECONDS:.0f}s settings_ttl={SETTINGS_CACHE_TTL_SECONDS:.0f}s "
    f"owners={len(OWNER_USER_IDS)} vips={len(VIP_USER_IDS)} games={len(GAME_CATALOG.games)}"
)

client = OpenAI(api_key=OPENAI_API_KEY)


_CHUNK_BREAKS = ("\n\n", "\n", " ")


def chunk_text(text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> list[str]:
    remaining = text or ""
    if len(remaining) <= limit:
        return [remaining]

    parts: list[str] = []
    while len(remaining) > limit:
        cut = next((i for i in (remaining.rfind(b, 0, limit) for b in _CHUNK_BREAKS) if i > 0), limit)
        head = remaining[:cut].strip()
        if head:
            parts.append(head)
        remaining = remaining[cut:].strip()
    if remaining:
        parts.append(remaining)
    return parts


async def send_chunked(channel: discord.abc.Messageable, text: str) -> None:
    for part in chunk_text(text):
        await channel.send(part)


def _safe_table_info(cur, table: str):
    try:
        cur.execute(f"PRAGMA table_info({table})")
        return [r[1] for r in cur.fetchall()]
    except Exception as e:
        return [f"<error: {e}>"]


def _schema_has_columns(cur, table: str, required: list[str]) -> tuple[bool, list[str]]:
    cols = set(_safe_table_info(cur, table))
    missing = [c for c in required if c not in cols]
    return (len(missing) == 0, missing)


# =========================
# SQLITE
# =========================
def init_db(db_path: str) -> sqlite3.Connection:
    # check_same_thread=False because discord.py event loop + to_thread usage
    conn = sqlite3.connect(db_path, check_same_thread=False)
    cur = conn.cursor()

    cur.execute("PRAGMA journal_mode=WAL;")
    cur.execute("PRAGMA synchronous=NORMAL;")
    repo_root = os.path.dirname(os.path.abspath(__file__))
    migrations_dir = os.path.join(repo_root, "migrations")
    apply_sqlite_migrations(conn, migrations_dir)

    try:
        required = [
            (
                "guild_settings",
                ["automod_enabled", "leveling_enabled", "ai_enabled", "ai_channel_id", "ai_trigger_symbol", "ai_personality"],
            ),
            ("settings", ["guild_id", "key", "value"]),
            ("disabled_commands", ["guild_id", "command_name", "reason"]),
            ("channel_messages", ["message_id", "channel_id", "author_id", "content", "created_at_utc"]),
            ("user_levels", ["guild_id", "user_id", "xp", "level", "message_count"]),
            ("warnings", ["guild_id", "user_id", "reason", "source", "expires_at_utc"]),
            ("ticket_settings", ["category_id", "staff_role_ids_json", "next_ticket_number"]),
            ("tickets", ["channel_id", "user_id", "ticket_number", "status", "claimed_by"]),
            ("giveaways", ["message_id", "winner_count", "ends_at_utc", "ended"]),
            ("giveaway_entries", ["giveaway_id", "user_id"]),
            ("self_roles", ["guild_id", "role_id", "emoji", "description"]),
        ]
        for tbl, req in required:
            ok_t, missing_t = _schema_has_columns(cur, tbl, req)
            print(f"[DB] {tbl} schema OK={ok_t} missing={missing_t}")
    except Exception as e:
        print(f"[DB] Schema verification failed: {e}")

    conn.commit()
    return conn


db_conn = init_db(DB_PATH)
print(f"[DB] Using DB_PATH={DB_PATH}")
print(f"[DB] DB file exists? {os.path.exists(DB_PATH)}")
db_lock = asyncio.Lock()

# =========================
# RUNTIME STATE + SERVICES
# =========================
leases = LeaseManager(ttl_seconds=LEASE_TTL_SECONDS)
rate_limiter = RateLimiter()
memory = ConversationMemory(
    max_entries=CHAT_MAX_ENTRIES,
    max_users=CHAT_MAX_USERS,
    keep_users=CHAT_KEEP_USERS,
    rate_limiter=rate_limiter,
)
settings_service = SettingsService(db_lock=db_lock, db_conn=db_conn, ttl_seconds=SETTINGS_CACHE_TTL_SECONDS)
chat_service = ChatService(
    provider=OpenAIChatProvider(
        client=client,
        model=OPENAI_MODEL,
        max_retries=DEFAULT_LLM_MAX_RETRIES,
        backoff_base_seconds=DEFAULT_LLM_BACKOFF_BASE_SECONDS,
    ),
    memory=memory,
    rate_limiter=rate_limiter,
    games=GAME_CATALOG,
    token_budget=CHAT_TOKEN_BUDGET,
    cooldown_seconds=CHAT_COOLDOWN_SECONDS,
    max_tokens=DEFAULT_CHAT_MAX_TOKENS,
    vip_user_ids=VIP_USER_IDS,
)
ticket_service = TicketService(db_lock=db_lock, db_conn=db_conn, close_delay_seconds=TICKET_CLOSE_DELAY_SECONDS)
moderation_service = ModerationService(db_lock=db_lock, db_conn=db_conn, warning_ttl_days=DEFAULT_WARNING_TTL_DAYS)
level_service = LevelService(
    db_lock=db_lock,
    db_conn=db_conn,
    leases=leases,
    rate_limiter=rate_limiter,
    cooldown_seconds=XP_COOLDOWN_SECONDS,
    rng=random.Random(),
)
giveaway_service = GiveawayService(db_lock=db_lock, db_conn=db_conn, rng=random.Random())
self_role_service = SelfRoleService(db_lock=db_lock, db_conn=db_conn)


def user_is_owner(user) -> bool:
    return user_is_owner_gate(user, OWNER_USER_IDS)


# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True
intents.members = True

bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

wire_bot_runtime(
    bot,
    user_is_owner=user_is_owner,
    owner_user_ids=OWNER_USER_IDS,
    list_schema_migrations_sync=list_schema_migrations_sync,
    db_lock=db_lock,
    db_conn=db_conn,
    send_chunked=send_chunked,
    leases=leases,
    rate_limiter=rate_limiter,
    memory=memory,
    settings=settings_service,
    chat=chat_service,
    tickets=ticket_service,
    moderation=moderation_service,
    levels=level_service,
    giveaways=giveaway_service,
    selfroles=self_role_service,
    command_cooldown_seconds=DEFAULT_COMMAND_COOLDOWN_SECONDS,
    ticket_cooldown_seconds=TICKET_CREATE_COOLDOWN_SECONDS,
    leaderboard_cooldown_seconds=LEADERBOARD_PAGE_COOLDOWN_SECONDS,
    giveaway_cooldown_seconds=GIVEAWAY_ENTER_COOLDOWN_SECONDS,
    giveaway_sweep_seconds=DEFAULT_GIVEAWAY_SWEEP_SECONDS,
    channel_history_keep=CHANNEL_HISTORY_KEEP,
    recent_context_limit=3,
    lease_sweep_seconds=DEFAULT_LEASE_SWEEP_SECONDS,
    maintenance_interval_seconds=MAINTENANCE_INTERVAL_SECONDS,
)

bot.run(DISCORD_TOKEN)
