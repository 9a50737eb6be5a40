"""CLI entry point for token_vesting."""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import click

from token_vesting.auth import FieldSignerVerifier
from token_vesting.config import load_config
from token_vesting.engine.calculator import claimable_amount, vested_amount
from token_vesting.errors import VestingError
from token_vesting.interfaces.clock import SystemClock
from token_vesting.ledger.local import LocalTokenLedger
from token_vesting.models.config import TransferBackend, VestingConfig
from token_vesting.models.schedule import ScheduleKey, VestingSchedule
from token_vesting.notify import AuditLogEventSink, FanoutEventSink, LoggingEventSink
from token_vesting.service import VestingService
from token_vesting.storage.sqlite import SQLiteScheduleStore

log = logging.getLogger(__name__)


class TimestampType(click.ParamType):
    """Integer seconds since the epoch, or an ISO 8601 datetime (UTC if naive)."""

    name = "timestamp"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            self.fail(
                f"{value!r} is not a timestamp or ISO 8601 datetime "
                "(e.g. '2025-01-01T00:00:00Z')",
                param, ctx,
            )
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())


TIMESTAMP = TimestampType()


def _fmt_time(ts: int) -> str:
    if ts == 0:
        return "-"
    return f"{ts} ({datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()})"


def _run(coro) -> None:
    """Run a command coroutine, turning domain errors into exit status 1."""
    try:
        asyncio.run(coro)
    except VestingError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _now(now: int | None) -> int:
    return now if now is not None else SystemClock().now()


def _caller(ctx: click.Context, cfg: VestingConfig) -> str:
    """Resolve the identity invoking the command."""
    if ctx.obj.get("caller"):
        return ctx.obj["caller"]
    if cfg.identity:
        return cfg.identity
    if cfg.backend == TransferBackend.STELLAR and cfg.stellar.keypair_secret:
        from stellar_sdk import Keypair

        return Keypair.from_secret(cfg.stellar.keypair_secret).public_key
    click.echo("Error: No caller identity configured.", err=True)
    click.echo("Pass --as, set TOKEN_VESTING_IDENTITY, or identity in [service].", err=True)
    sys.exit(1)


def _require_local(cfg: VestingConfig) -> None:
    if cfg.backend != TransferBackend.LOCAL:
        click.echo("Error: This command needs the local ledger backend.", err=True)
        sys.exit(1)


@asynccontextmanager
async def _open(cfg: VestingConfig) -> AsyncIterator[tuple[VestingService, LocalTokenLedger | None]]:
    """Build a wired VestingService; closes the store on exit."""
    store = SQLiteScheduleStore(cfg.db_path)
    await store.initialize()
    ledger: LocalTokenLedger | None = None
    try:
        if cfg.backend == TransferBackend.STELLAR:
            from token_vesting.stellar.custody import StellarTransferService

            transfer = StellarTransferService(cfg.stellar)
        else:
            ledger = LocalTokenLedger(store)
            await ledger.initialize()
            transfer = ledger
        service = VestingService(
            store,
            transfer,
            events=FanoutEventSink(LoggingEventSink(), AuditLogEventSink(store)),
            verifier=FieldSignerVerifier(),
        )
        yield service, ledger
    finally:
        await store.close()


def _schedule_options(f):
    f = click.option("--name", required=True, help="Schedule name (at most 32 bytes)")(f)
    f = click.option("--asset", required=True, help="Asset identifier")(f)
    f = click.option("--beneficiary", required=True, help="Beneficiary identity")(f)
    return f


def _now_option(f):
    return click.option(
        "--now", type=TIMESTAMP, default=None,
        help="Evaluate at this time instead of the system clock",
    )(f)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--as", "caller", default=None, help="Act as this identity (local backend)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool, caller: str | None) -> None:
    """token-vesting - token release schedules with cliff, intervals and revocation."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["caller"] = caller

    cfg = load_config(config_path)
    ctx.obj["config"] = cfg

    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show service configuration."""
    cfg: VestingConfig = ctx.obj["config"]
    click.echo(f"Backend:    {cfg.backend.value}")
    click.echo(f"Identity:   {ctx.obj['caller'] or cfg.identity or '(not set)'}")
    click.echo(f"DB path:    {cfg.db_path}")
    if cfg.backend == TransferBackend.STELLAR:
        click.echo(f"Network:    {cfg.stellar.network}")
        click.echo(f"Horizon:    {cfg.stellar.horizon_url}")
        click.echo(f"Secret:     {'***configured***' if cfg.stellar.keypair_secret else '(not set)'}")
        click.echo(f"Custody:    {'***configured***' if cfg.stellar.custody_seed else '(not set)'}")


# ── Local ledger ───────────────────────────────────────


@cli.command()
@click.option("--holder", required=True, help="Identity to credit")
@click.option("--asset", required=True, help="Asset identifier")
@click.option("--amount", type=int, required=True, help="Units to credit")
@click.pass_context
def mint(ctx: click.Context, holder: str, asset: str, amount: int) -> None:
    """Credit units to a holder on the local ledger."""
    cfg: VestingConfig = ctx.obj["config"]
    _require_local(cfg)

    async def _mint():
        async with _open(cfg) as (_, ledger):
            balance = await ledger.mint(holder, asset, amount)
            click.echo(f"Minted {amount} {asset} to {holder} (balance {balance})")

    _run(_mint())


@cli.command()
@click.option("--holder", default=None, help="Identity to query (default: caller)")
@click.option("--asset", required=True, help="Asset identifier")
@click.pass_context
def balance(ctx: click.Context, holder: str | None, asset: str) -> None:
    """Show a holder's local ledger balance."""
    cfg: VestingConfig = ctx.obj["config"]
    _require_local(cfg)
    holder = holder or _caller(ctx, cfg)

    async def _balance():
        async with _open(cfg) as (_, ledger):
            click.echo(f"{holder}: {await ledger.balance_of(holder, asset)} {asset}")

    _run(_balance())


# ── Schedule lifecycle ─────────────────────────────────


@cli.command()
@_schedule_options
@click.option("--amount", type=int, required=True, help="Total units to vest")
@click.option("--start", "start_time", type=TIMESTAMP, required=True, help="Start (cliff) time")
@click.option("--end", "end_time", type=TIMESTAMP, required=True, help="End time")
@click.option("--cliff-percentage", type=int, default=0, show_default=True,
              help="Percent released at start (0-100)")
@click.option("--payment-interval", type=int, default=None,
              help="Release step in seconds (omit for continuous release)")
@click.option("--revocable", is_flag=True, help="Allow the creator to revoke")
@click.pass_context
def init(
    ctx: click.Context,
    beneficiary: str,
    asset: str,
    name: str,
    amount: int,
    start_time: int,
    end_time: int,
    cliff_percentage: int,
    payment_interval: int | None,
    revocable: bool,
) -> None:
    """Create a vesting schedule and fund its custody balance."""
    cfg: VestingConfig = ctx.obj["config"]
    creator = _caller(ctx, cfg)

    async def _init():
        async with _open(cfg) as (service, _):
            schedule = await service.create(
                beneficiary=beneficiary,
                creator=creator,
                asset=asset,
                start_time=start_time,
                end_time=end_time,
                total_amount=amount,
                cliff_percentage=cliff_percentage,
                payment_interval=payment_interval,
                name=name,
                revocable=revocable,
            )
            click.echo(f"Created schedule {schedule.key}")
            click.echo(f"  Custody:  {schedule.custody_id}")
            click.echo(f"  Amount:   {schedule.total_amount} {schedule.asset}")

    _run(_init())


@cli.command()
@_schedule_options
@_now_option
@click.pass_context
def claim(ctx: click.Context, beneficiary: str, asset: str, name: str, now: int | None) -> None:
    """Claim everything currently vested (beneficiary only)."""
    cfg: VestingConfig = ctx.obj["config"]
    caller = _caller(ctx, cfg)

    async def _claim():
        async with _open(cfg) as (service, _):
            result = await service.claim(
                ScheduleKey(beneficiary, asset, name), _now(now), caller=caller,
            )
            click.echo(f"Claimed {result.amount} {asset} (total claimed {result.claimed_total})")
            if result.reference:
                click.echo(f"  Reference: {result.reference}")

    _run(_claim())


@cli.command()
@_schedule_options
@_now_option
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def revoke(
    ctx: click.Context, beneficiary: str, asset: str, name: str, now: int | None, yes: bool,
) -> None:
    """Revoke a schedule, returning all unclaimed units to the creator.

    Units that vested but were not yet claimed are returned too.
    """
    cfg: VestingConfig = ctx.obj["config"]
    caller = _caller(ctx, cfg)
    if not yes:
        click.confirm(f"Revoke {beneficiary}/{asset}/{name}?", abort=True)

    async def _revoke():
        async with _open(cfg) as (service, _):
            result = await service.revoke(
                ScheduleKey(beneficiary, asset, name), _now(now), caller=caller,
            )
            click.echo(f"Revoked at {_fmt_time(result.revoked_at)}")
            click.echo(f"  Returned: {result.returned_amount} {asset}")

    _run(_revoke())


# ── Read-only ──────────────────────────────────────────


@cli.command()
@_schedule_options
@_now_option
@click.pass_context
def estimate(ctx: click.Context, beneficiary: str, asset: str, name: str, now: int | None) -> None:
    """Print the amount claimable now, without claiming."""
    cfg: VestingConfig = ctx.obj["config"]

    async def _estimate():
        async with _open(cfg) as (service, _):
            click.echo(await service.estimate(ScheduleKey(beneficiary, asset, name), _now(now)))

    _run(_estimate())


def _echo_schedule(schedule: VestingSchedule, now: int) -> None:
    click.echo(f"Schedule {schedule.key}")
    click.echo(f"  Creator:      {schedule.creator}")
    click.echo(f"  Start:        {_fmt_time(schedule.start_time)}")
    click.echo(f"  End:          {_fmt_time(schedule.end_time)}")
    click.echo(f"  Total:        {schedule.total_amount}")
    click.echo(f"  Claimed:      {schedule.claimed_amount}")
    click.echo(f"  Cliff:        {schedule.cliff_percentage}%")
    interval = f"{schedule.payment_interval}s" if schedule.payment_interval else "continuous"
    click.echo(f"  Interval:     {interval}")
    click.echo(f"  Revocable:    {schedule.revocable}")
    click.echo(f"  Revoked at:   {_fmt_time(schedule.revoked_at)}")
    click.echo(f"  Last claim:   {_fmt_time(schedule.last_claimed_at)}")
    click.echo(f"  Vested:       {vested_amount(schedule, now)}")
    click.echo(f"  Claimable:    {claimable_amount(schedule, now)}")


@cli.command()
@_schedule_options
@_now_option
@click.pass_context
def show(ctx: click.Context, beneficiary: str, asset: str, name: str, now: int | None) -> None:
    """Show a schedule with its vested and claimable amounts."""
    cfg: VestingConfig = ctx.obj["config"]

    async def _show():
        async with _open(cfg) as (service, _):
            _echo_schedule(await service.get(ScheduleKey(beneficiary, asset, name)), _now(now))

    _run(_show())


@cli.command("list")
@click.option("--beneficiary", default=None, help="Only schedules for this beneficiary")
@click.option("--creator", default=None, help="Only schedules created by this identity")
@_now_option
@click.pass_context
def list_cmd(
    ctx: click.Context, beneficiary: str | None, creator: str | None, now: int | None,
) -> None:
    """List schedules."""
    cfg: VestingConfig = ctx.obj["config"]

    async def _list():
        async with _open(cfg) as (service, _):
            schedules = await service.list_schedules(beneficiary=beneficiary, creator=creator)
            if not schedules:
                click.echo("No schedules.")
                return
            at = _now(now)
            for s in schedules:
                state = "revoked" if s.is_revoked else "active"
                click.echo(
                    f"  [{state:7s}] {s.key} total={s.total_amount} "
                    f"claimed={s.claimed_amount} claimable={claimable_amount(s, at)}"
                )

    _run(_list())


@cli.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of entries to show")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Show the audit log of committed transitions."""
    cfg: VestingConfig = ctx.obj["config"]

    async def _history():
        async with _open(cfg) as (service, _):
            entries = await service.store.get_recent_activity(limit)
            if not entries:
                click.echo("No activity recorded.")
                return
            for e in entries:
                click.echo(f"  {e.created_at} [{e.event_type}] {e.message}")

    _run(_history())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
