"""
Domain: Admission
Storage: config, event_info, minter_address (actor -> minted count)

Gates the privileged mint action. A mint is admitted when minting is
enabled, the block time lies in ``[start_time, end_time]`` and the actor is
below the per-address limit. An admitted mint bumps the actor's count and
yields the instruction to forward to the token collection.

Open policy points are carried by ``MintPolicy``:
  - reenable: enabling twice is a no-op or an error
  - allow_disable: whether minting can be switched off again
  - mint_to_quota: whether admin-directed mints respect the limit
"""
from __future__ import annotations

import logging
from typing import Literal, Optional, Protocol

from pydantic import BaseModel

from ..kernel.deps import Api
from ..kernel.errors import (
    AuthorizationError,
    EligibilityError,
    QuotaExceededError,
    TransportError,
    ValidationError,
    WindowError,
)
from ..kernel.schema import WasmExecute
from ..query.profiles import ProfileData
from ..query.querier import ProfilesQuerier, QueryRouter
from .config_store import ConfigStore

logger = logging.getLogger(__name__)


class MintPolicy(BaseModel):
    reenable: Literal["noop", "error"] = "noop"
    allow_disable: bool = False
    mint_to_quota: Literal["enforce", "bypass"] = "enforce"


class MintWindow(BaseModel):
    start_time: int  # seconds
    end_time: int  # seconds

    def validate_window(self) -> None:
        if self.start_time >= self.end_time:
            raise ValidationError(
                f"start time {self.start_time} must be before end time {self.end_time}"
            )

    def check(self, now: int) -> None:
        """Inclusive on both ends."""
        if now < self.start_time:
            raise WindowError("event not started", now=now, start_time=self.start_time)
        if now > self.end_time:
            raise WindowError("event terminated", now=now, end_time=self.end_time)


class EventInfo(MintWindow):
    creator: str
    per_address_limit: int
    poap_uri: str

    def validate_event(self, api: Api) -> None:
        self.validate_window()
        api.addr_validate(self.creator)
        if self.per_address_limit < 1:
            raise ValidationError("per address limit must be at least 1")
        if not self.poap_uri:
            raise ValidationError("poap uri must not be empty")


class Metadata(BaseModel):
    """Extension attached to every minted token."""

    claimer: str


class CollectionMint(BaseModel):
    owner: str
    token_uri: Optional[str] = None
    extension: Metadata


class AdmissionConfig(Protocol):
    admin: str
    minter: str
    mint_enabled: bool
    collection_address: str
    policy: MintPolicy


def require_admin(config: BaseModel, sender: str) -> None:
    if sender != getattr(config, "admin"):
        raise AuthorizationError(f"{sender} is not the admin", sender=sender)


def update_admin(configs: ConfigStore, api: Api, sender: str, new_admin: str) -> BaseModel:
    """Hand admin rights over. Only the current admin may do this."""
    config = configs.load()
    require_admin(config, sender)
    new_admin = api.addr_validate(new_admin)
    updated = config.model_copy(update={"admin": new_admin})
    configs.save(updated)
    logger.info("admin changed from %s to %s", sender, new_admin)
    return updated


class AdmissionController:
    def __init__(self, configs: ConfigStore, event_info: EventInfo, api: Api) -> None:
        self._configs = configs
        self._event = event_info
        self._api = api

    @property
    def event_info(self) -> EventInfo:
        return self._event

    def enable(self, sender: str) -> bool:
        """Returns whether the state changed."""
        config = self._configs.load()
        require_admin(config, sender)
        if config.mint_enabled:
            if config.policy.reenable == "error":
                raise ValidationError("mint already enabled")
            return False
        self._configs.save(config.model_copy(update={"mint_enabled": True}))
        return True

    def disable(self, sender: str) -> bool:
        config = self._configs.load()
        require_admin(config, sender)
        if not config.policy.allow_disable:
            raise ValidationError("mint cannot be disabled once enabled")
        if not config.mint_enabled:
            return False
        self._configs.save(config.model_copy(update={"mint_enabled": False}))
        return True

    def mint(self, actor: str, now: int) -> WasmExecute:
        config = self._configs.load()
        self._check_open(config, now)
        forward = self._forward(config, owner=actor, claimer=actor)
        self._admit(actor, enforce_quota=True)
        return forward

    def mint_to(self, sender: str, recipient: str, now: int) -> WasmExecute:
        config = self._configs.load()
        if sender not in (config.admin, config.minter):
            raise AuthorizationError(f"{sender} may not mint to others", sender=sender)
        recipient = self._api.addr_validate(recipient)
        self._check_open(config, now)
        forward = self._forward(config, owner=recipient, claimer=recipient)
        self._admit(recipient, enforce_quota=config.policy.mint_to_quota == "enforce")
        return forward

    def update_minter(self, sender: str, new_minter: str) -> None:
        config = self._configs.load()
        require_admin(config, sender)
        new_minter = self._api.addr_validate(new_minter)
        self._configs.save(config.model_copy(update={"minter": new_minter}))

    def minted_amount(self, actor: str) -> int:
        return self._configs.load_counter(actor)

    def _check_open(self, config: AdmissionConfig, now: int) -> None:
        if not config.mint_enabled:
            raise WindowError("mint disabled")
        self._event.check(now)

    def _admit(self, actor: str, enforce_quota: bool) -> int:
        count = self._configs.load_counter(actor)
        if enforce_quota and count >= self._event.per_address_limit:
            raise QuotaExceededError(
                f"{actor} reached the limit of {self._event.per_address_limit}",
                actor=actor,
                count=count,
            )
        self._configs.save_counter(actor, count + 1)
        return count + 1

    def _forward(self, config: AdmissionConfig, owner: str, claimer: str) -> WasmExecute:
        if not config.collection_address:
            raise ValidationError("token collection not deployed yet")
        mint = CollectionMint(
            owner=owner,
            token_uri=self._event.poap_uri,
            extension=Metadata(claimer=claimer),
        )
        return WasmExecute(
            contract_addr=config.collection_address,
            msg={"mint": mint.model_dump(mode="json")},
        )


class EligibilityGate:
    """
    An actor is eligible when the domain service knows its profile. Any
    transport failure counts as not eligible.
    """

    def __init__(self, router: QueryRouter) -> None:
        self._profiles = ProfilesQuerier(router)

    def check(self, actor: str) -> ProfileData:
        try:
            response = self._profiles.query_profile(actor)
        except TransportError as exc:
            logger.info("%s not eligible: %s", actor, exc.message)
            raise EligibilityError(f"{actor} is not eligible: {exc.message}", actor=actor) from exc
        if response.profile.account.address != actor:
            raise EligibilityError(f"profile returned for {actor} belongs to someone else", actor=actor)
        return response.profile


