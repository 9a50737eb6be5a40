"""Stellar transfer service - custody balances as derived Stellar accounts."""

from __future__ import annotations

import hashlib
import logging

from stellar_sdk import Asset, Keypair, Network, ServerAsync, TransactionBuilder
from stellar_sdk.client.aiohttp_client import AiohttpClient
from stellar_sdk.exceptions import BaseHorizonError

from token_vesting.engine.checked import I64_MAX
from token_vesting.models.config import StellarConfig
from token_vesting.models.records import TransferResult
from token_vesting.models.schedule import CustodyAuthority

log = logging.getLogger(__name__)

STROOPS_PER_UNIT = 10_000_000
TX_TIMEOUT = 30  # seconds

NETWORK_PASSPHRASES = {
    "testnet": Network.TESTNET_NETWORK_PASSPHRASE,
    "mainnet": Network.PUBLIC_NETWORK_PASSPHRASE,
}


def to_stellar_amount(units: int) -> str:
    """Format integer stroops as a 7-decimal Stellar amount string."""
    if not 0 <= units <= I64_MAX:
        raise ValueError(f"amount {units} is outside the Stellar int64 range")
    return f"{units // STROOPS_PER_UNIT}.{units % STROOPS_PER_UNIT:07d}"


def parse_asset(asset: str) -> Asset:
    """``"native"`` or ``"CODE:ISSUER"`` to a stellar_sdk Asset."""
    if asset in ("native", "XLM"):
        return Asset.native()
    code, sep, issuer = asset.partition(":")
    if not sep or not code or not issuer:
        raise ValueError(f"asset must be 'native' or 'CODE:ISSUER', got {asset!r}")
    return Asset(code, issuer)


def derive_custody_keypair(custody_seed: str, custody_id: str) -> Keypair:
    """Deterministic custody signer for one schedule."""
    raw = hashlib.sha256(
        custody_seed.encode("utf-8") + b"\x00" + custody_id.encode("utf-8")
    ).digest()
    return Keypair.from_raw_ed25519_seed(raw)


def _classify_error(exc: BaseHorizonError) -> str:
    """Pull the most specific result code out of a Horizon error."""
    extras = exc.extras or {}
    codes = extras.get("result_codes") or {}
    ops = codes.get("operations") or []
    failing = [c for c in ops if c != "op_success"]
    if failing:
        return failing[0]
    return codes.get("transaction") or exc.title or "unknown"


class StellarTransferService:
    """Implements TransferService with Stellar payments.

    Each schedule's custody balance is a Stellar account whose keypair is
    derived from the configured custody seed and the schedule's custody id,
    so custody signers never need to be stored. The operator keypair funds
    new custody accounts and must be the schedule creator.
    """

    def __init__(self, cfg: StellarConfig) -> None:
        if not cfg.keypair_secret:
            raise ValueError("Stellar backend requires keypair_secret")
        if not cfg.custody_seed:
            raise ValueError("Stellar backend requires custody_seed")
        self._cfg = cfg
        self._operator = Keypair.from_secret(cfg.keypair_secret)
        self._passphrase = cfg.network_passphrase or NETWORK_PASSPHRASES.get(cfg.network, "")

    @property
    def operator_address(self) -> str:
        return self._operator.public_key

    def custody_address(self, authority: CustodyAuthority) -> str:
        return self._custody_keypair(authority).public_key

    def _custody_keypair(self, authority: CustodyAuthority) -> Keypair:
        return derive_custody_keypair(self._cfg.custody_seed, authority.custody_id)

    async def _submit(self, source: Keypair, build, signers: list[Keypair], amount: int) -> TransferResult:
        """Load ``source``, let ``build`` append operations, sign, submit."""
        try:
            async with ServerAsync(self._cfg.horizon_url, AiohttpClient()) as server:
                account = await server.load_account(source.public_key)
                builder = TransactionBuilder(
                    source_account=account,
                    network_passphrase=self._passphrase,
                    base_fee=self._cfg.base_fee,
                )
                build(builder)
                tx = builder.set_timeout(TX_TIMEOUT).build()
                for kp in signers:
                    tx.sign(kp)
                response = await server.submit_transaction(tx)
        except BaseHorizonError as exc:
            error = _classify_error(exc)
            log.warning("Stellar transaction failed: %s (status=%s)", error, exc.status)
            return TransferResult(success=False, amount=amount, error=f"horizon:{error}")
        except ValueError as exc:
            log.warning("Stellar transaction rejected locally: %s", exc)
            return TransferResult(success=False, amount=amount, error=str(exc))
        except Exception as exc:
            log.error("Stellar transaction unexpected error: %s", exc)
            return TransferResult(success=False, amount=amount, error=str(exc))

        tx_hash = response.get("hash", "")
        log.info("Stellar transaction submitted (tx=%s)", tx_hash[:16] if tx_hash else "?")
        return TransferResult(success=True, amount=amount, reference=tx_hash)

    async def open_custody(
        self, authority: CustodyAuthority, funder: str, amount: int, asset: str,
    ) -> TransferResult:
        if funder != self._operator.public_key:
            return TransferResult(success=False, amount=amount, error="funder_not_operator")
        custody = self._custody_keypair(authority)

        def build(builder: TransactionBuilder) -> None:
            stellar_asset = parse_asset(asset)
            builder.append_create_account_op(
                destination=custody.public_key,
                starting_balance=self._cfg.starting_balance,
            )
            if not stellar_asset.is_native():
                builder.append_change_trust_op(asset=stellar_asset, source=custody.public_key)
            builder.append_payment_op(
                destination=custody.public_key,
                asset=stellar_asset,
                amount=to_stellar_amount(amount),
            )

        log.info("Opening custody %s with %d %s", custody.public_key[:16], amount, asset)
        return await self._submit(self._operator, build, [self._operator, custody], amount)

    async def transfer(
        self, authority: CustodyAuthority, to: str, amount: int, asset: str,
    ) -> TransferResult:
        custody = self._custody_keypair(authority)

        def build(builder: TransactionBuilder) -> None:
            stellar_asset = parse_asset(asset)
            builder.append_payment_op(
                destination=to, asset=stellar_asset, amount=to_stellar_amount(amount),
            )

        log.info("Paying %d %s from custody %s to %s", amount, asset, custody.public_key[:16], to[:16])
        return await self._submit(custody, build, [custody], amount)

    async def close_custody(
        self, authority: CustodyAuthority, rent_recipient: str,
    ) -> TransferResult:
        custody = self._custody_keypair(authority)

        def build(builder: TransactionBuilder) -> None:
            stellar_asset = parse_asset(authority.asset)
            if not stellar_asset.is_native():
                builder.append_change_trust_op(asset=stellar_asset, limit="0")
            builder.append_account_merge_op(destination=rent_recipient)

        log.info("Merging custody %s into %s", custody.public_key[:16], rent_recipient[:16])
        return await self._submit(custody, build, [custody], 0)

    async def release_custody(
        self, authority: CustodyAuthority, refund_to: str, amount: int, rent_recipient: str,
    ) -> TransferResult:
        """Refund, drop the trustline and merge the custody account in one transaction."""
        custody = self._custody_keypair(authority)

        def build(builder: TransactionBuilder) -> None:
            stellar_asset = parse_asset(authority.asset)
            if amount > 0:
                builder.append_payment_op(
                    destination=refund_to, asset=stellar_asset, amount=to_stellar_amount(amount),
                )
            if not stellar_asset.is_native():
                builder.append_change_trust_op(asset=stellar_asset, limit="0")
            builder.append_account_merge_op(destination=rent_recipient)

        log.info(
            "Releasing custody %s: %d %s to %s, merge into %s",
            custody.public_key[:16], amount, authority.asset, refund_to[:16], rent_recipient[:16],
        )
        return await self._submit(custody, build, [custody], amount)
