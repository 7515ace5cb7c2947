from __future__ import annotations

from ingestion.service import log_message as log_message_service
from ingestion.service import recent_channel_context as recent_channel_context_service
from jobs.service import giveaway_sweep_loop
from jobs.service import lease_sweep_loop
from jobs.service import maintenance_loop
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_admin import register as register_admin
from misc.commands.commands_ai import register as register_ai
from misc.commands.commands_giveaways import register as register_giveaways
from misc.commands.commands_levels import register as register_levels
from misc.commands.commands_moderation import register as register_moderation
from misc.commands.commands_owner import register as register_owner
from misc.commands.commands_selfroles import register as register_selfroles
from misc.commands.commands_tickets import register as register_tickets
from misc.commands.slash_manifest import register_slash_commands
from misc.discord_gates import member_can_manage_guild
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps
from runtime.dispatcher import InteractionDispatcher
from runtime.responder import DiscordResponder
from runtime.responder import event_from_interaction


def wire_bot_runtime(
    bot,
    *,
    user_is_owner,
    owner_user_ids: set[int],
    list_schema_migrations_sync,
    db_lock,
    db_conn,
    send_chunked,
    leases,
    rate_limiter,
    memory,
    settings,
    chat,
    tickets,
    moderation,
    levels,
    giveaways,
    selfroles,
    command_cooldown_seconds: float,
    ticket_cooldown_seconds: float,
    leaderboard_cooldown_seconds: float,
    giveaway_cooldown_seconds: float,
    giveaway_sweep_seconds: float,
    channel_history_keep: int,
    recent_context_limit: int,
    lease_sweep_seconds: float,
    maintenance_interval_seconds: int,
) -> InteractionDispatcher:
    command_deps = CommandDeps(
        db_lock=db_lock,
        db_conn=db_conn,
        send_chunked=send_chunked,
        list_schema_migrations_sync=list_schema_migrations_sync,
        leases=leases,
        rate_limiter=rate_limiter,
        memory=memory,
        settings=settings,
        chat=chat,
        tickets=tickets,
        moderation=moderation,
        levels=levels,
        giveaways=giveaways,
        selfroles=selfroles,
        command_cooldown_seconds=command_cooldown_seconds,
        ticket_cooldown_seconds=ticket_cooldown_seconds,
        leaderboard_cooldown_seconds=leaderboard_cooldown_seconds,
        giveaway_cooldown_seconds=giveaway_cooldown_seconds,
    )
    command_gates = CommandGates(
        user_is_owner=user_is_owner,
        can_manage_guild=member_can_manage_guild,
        owner_user_ids=owner_user_ids,
    )

    dispatcher = InteractionDispatcher(leases=leases, rate_limiter=rate_limiter)

    register_admin(dispatcher, deps=command_deps, gates=command_gates)
    register_ai(dispatcher, deps=command_deps, gates=command_gates)
    register_tickets(dispatcher, deps=command_deps, gates=command_gates)
    register_moderation(dispatcher, deps=command_deps, gates=command_gates)
    register_levels(dispatcher, deps=command_deps, gates=command_gates)
    register_giveaways(dispatcher, deps=command_deps, gates=command_gates)
    register_selfroles(dispatcher, deps=command_deps, gates=command_gates)

    register_owner(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    async def forward(interaction, name: str, options: dict) -> None:
        event = event_from_interaction(interaction, name=name, options=options)
        await dispatcher.dispatch(event, DiscordResponder(interaction))

    slash_names = register_slash_commands(bot.tree, forward=forward, game_choices=chat.games.choices())
    unrouted = sorted(set(slash_names) - set(dispatcher.command_names()))
    if unrouted:
        print(f"[Interaction] slash commands without a route: {', '.join(unrouted)}")

    async def log_message(message):
        return await log_message_service(
            message,
            db_lock=db_lock,
            db_conn=db_conn,
            keep_last=channel_history_keep,
        )

    async def recent_channel_context(channel_id: int, before_message_id: int, *, limit: int):
        return await recent_channel_context_service(
            channel_id,
            before_message_id,
            db_lock=db_lock,
            db_conn=db_conn,
            limit=limit,
        )

    async def run_lease_sweep():
        await lease_sweep_loop(leases, interval_seconds=lease_sweep_seconds)

    async def run_maintenance():
        await maintenance_loop(
            rate_limiter=rate_limiter,
            memory=memory,
            moderation=moderation,
            settings=settings,
            interval_seconds=maintenance_interval_seconds,
        )

    async def run_giveaway_sweep():
        await giveaway_sweep_loop(giveaways, bot, interval_seconds=giveaway_sweep_seconds)

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            db_lock=db_lock,
            db_conn=db_conn,
            leases=leases,
            dispatcher=dispatcher,
            settings=settings,
            chat=chat,
            moderation=moderation,
            levels=levels,
            log_message_func=log_message,
            recent_channel_context_func=recent_channel_context,
            recent_context_limit=recent_context_limit,
        ),
        boot=RuntimeBootDeps(
            lease_sweep_loop_func=run_lease_sweep,
            maintenance_loop_func=run_maintenance,
            giveaway_loop_func=run_giveaway_sweep,
        ),
    )
    return dispatcher
