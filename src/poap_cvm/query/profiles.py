"""
Profiles domain: user profiles, DTag transfer requests, chain links and
application links.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import ConfigDict, Field

from .types import PageRequest, PageResponse, WireModel

# =============================================================================
# Requests
# =============================================================================


class Profile(WireModel):
    user: str


class IncomingDtagTransferRequests(WireModel):
    receiver: str
    pagination: Optional[PageRequest] = None


class ChainLinks(WireModel):
    user: str
    pagination: Optional[PageRequest] = None


class UserChainLink(WireModel):
    user: str
    chain_name: str
    target: str


class AppLinks(WireModel):
    user: str
    pagination: Optional[PageRequest] = None


class UserAppLinks(WireModel):
    user: str
    application: str
    username: str


class ApplicationLinkByChainId(WireModel):
    client_id: str


OPERATIONS = {
    "profile": Profile,
    "incoming_dtag_transfer_requests": IncomingDtagTransferRequests,
    "chain_links": ChainLinks,
    "user_chain_link": UserChainLink,
    "app_links": AppLinks,
    "user_app_links": UserAppLinks,
    "application_link_by_chain_id": ApplicationLinkByChainId,
}

# =============================================================================
# Models
# =============================================================================


class PubKey(WireModel):
    proto_type: str = Field(alias="@type")
    key: str

    model_config = ConfigDict(populate_by_name=True)


class Account(WireModel):
    proto_type: str = Field(alias="@type")
    address: str
    pub_key: PubKey
    account_number: str
    sequence: str

    model_config = ConfigDict(populate_by_name=True)


class Pictures(WireModel):
    profile: str
    cover: str


class ProfileData(WireModel):
    account: Account
    dtag: str
    nickname: str
    bio: str
    pictures: Pictures
    creation_date: str


class DtagTransferRequest(WireModel):
    dtag_to_trade: str
    sender: str
    receiver: str


class ChainLinkAddr(WireModel):
    proto_type: str = Field(alias="@type")
    value: str
    prefix: str

    model_config = ConfigDict(populate_by_name=True)


class Signature(WireModel):
    proto_type: str = Field(alias="@type")
    signature: str

    model_config = ConfigDict(populate_by_name=True)


class Proof(WireModel):
    pub_key: PubKey
    signature: Signature
    plain_text: str


class ChainConfig(WireModel):
    name: str


class ChainLink(WireModel):
    user: str
    address: ChainLinkAddr
    proof: Proof
    chain_config: ChainConfig
    creation_time: str


class AppLinkData(WireModel):
    application: str
    username: str


class CallData(WireModel):
    application: str
    call_data: str


class OracleRequest(WireModel):
    id: str
    oracle_script_id: str
    call_data: CallData
    client_id: str


class AppLinkSuccess(WireModel):
    value: str
    signature: str


class AppLinkFailed(WireModel):
    error: str


class AppLinkResult(WireModel):
    """Exactly one of ``success`` / ``failed`` is set."""

    success: Optional[AppLinkSuccess] = None
    failed: Optional[AppLinkFailed] = None


class ApplicationLink(WireModel):
    user: str
    data: AppLinkData
    state: str
    oracle_request: OracleRequest
    result: Optional[AppLinkResult] = None
    creation_time: str


# =============================================================================
# Responses
# =============================================================================


class QueryProfileResponse(WireModel):
    profile: ProfileData


class QueryIncomingDtagTransferRequestResponse(WireModel):
    requests: List[DtagTransferRequest]
    pagination: PageResponse = Field(default_factory=PageResponse)


class QueryChainLinksResponse(WireModel):
    links: List[ChainLink]
    pagination: PageResponse = Field(default_factory=PageResponse)


class QueryUserChainLinkResponse(WireModel):
    link: ChainLink


class QueryApplicationLinksResponse(WireModel):
    links: List[ApplicationLink]
    pagination: PageResponse = Field(default_factory=PageResponse)


class QueryUserApplicationLinkResponse(WireModel):
    link: ApplicationLink


class QueryApplicationLinkByClientIdResponse(WireModel):
    link: ApplicationLink

