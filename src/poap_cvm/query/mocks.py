"""
Ready made domain fixtures and a recording domain service for tests.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from . import posts, profiles, relationships, subspaces
from .codec import WireShape, detect_shape
from .service import DomainData, DomainService, MemoryProfileDirectory, new_profile

MOCK_USER = "desmos1nwp8gxrnmrsrzjdhvk47vvmthzxjtphgxp5ftc"
MOCK_RECEIVER = "desmos1rfv0f7mx7w9d3jv3h803u38vqym9ygg344asm3"


class MockProfilesQueries:
    @staticmethod
    def get_mock_profile(address: str = MOCK_USER) -> profiles.ProfileData:
        return profiles.ProfileData(
            account=profiles.Account(
                proto_type="/cosmos.auth.v1beta1.BaseAccount",
                address=address,
                pub_key=profiles.PubKey(
                    proto_type="/cosmos.crypto.secp256k1.PubKey",
                    key="ArlRm0a5fFTHFfKha1LpDd+g3kZlyRBBF4R8PSM8Zo4Y",
                ),
                account_number="0",
                sequence="15",
            ),
            dtag="goldrake",
            nickname="Goldrake",
            bio="This is Goldrake",
            pictures=profiles.Pictures(profile="", cover=""),
            creation_date="2022-02-21T13:18:27.257641Z",
        )

    @staticmethod
    def get_mock_dtag_transfer_request() -> profiles.DtagTransferRequest:
        return profiles.DtagTransferRequest(
            dtag_to_trade="goldrake", sender=MOCK_USER, receiver=MOCK_RECEIVER
        )

    @staticmethod
    def get_mock_relationship() -> relationships.Relationship:
        return relationships.Relationship(
            creator=MOCK_USER, counterparty=MOCK_RECEIVER, subspace_id=1
        )

    @staticmethod
    def get_mock_user_block() -> relationships.UserBlock:
        return relationships.UserBlock(
            blocker=MOCK_USER, blocked=MOCK_RECEIVER, reason="test", subspace_id=1
        )

    @staticmethod
    def get_mock_chain_link() -> profiles.ChainLink:
        return profiles.ChainLink(
            user=MOCK_USER,
            address=profiles.ChainLinkAddr(
                proto_type="/desmos.profiles.v1beta1.Bech32Address",
                value="cosmos18xnmlzqrqr6zt526pnczxe65zk3f4xgmndpxn2",
                prefix="cosmos",
            ),
            proof=profiles.Proof(
                pub_key=profiles.PubKey(
                    proto_type="/cosmos.crypto.secp256k1.PubKey",
                    key="AyRUhKXAY6zOCjjFkPN78Q29sBKHjUx4VSZQ4HXh66IM",
                ),
                signature=profiles.Signature(
                    proto_type="/desmos.profiles.v1beta1.SingleSignatureData",
                    signature="C7xppu4C4S3dgeC9TVqhyGN1hbMnMbnmWgXQI2WE8t0oHIHhDTqXyZgzhNNYiBO7ulno3G8EXO3Ep5KMFngyFg",
                ),
                plain_text="636f736d6f733138786e6d6c7a71727172367a74353236706e637a786536357a6b33663478676d6e6470786e32",
            ),
            chain_config=profiles.ChainConfig(name="cosmos"),
            creation_time="2022-02-21T13:18:57.800827Z",
        )

    @staticmethod
    def get_mock_application_link() -> profiles.ApplicationLink:
        return profiles.ApplicationLink(
            user=MOCK_USER,
            data=profiles.AppLinkData(application="twitter", username="goldrake"),
            state="APPLICATION_LINK_STATE_VERIFICATION_SUCCESS",
            oracle_request=profiles.OracleRequest(
                id="537807",
                oracle_script_id="32",
                call_data=profiles.CallData(
                    application="twitter",
                    call_data="7b22757365726e616d65223a224c756361675f5f2335323337227d",
                ),
                client_id=f"{MOCK_USER}-twitter-goldrake",
            ),
            result=profiles.AppLinkResult(
                success=profiles.AppLinkSuccess(
                    value="4c756361675f5f2345423337",
                    signature="9690d734171298eb4cc9636c36d8507535264c1fdb136c9095a6a50c41ccffa",
                )
            ),
            creation_time="2022-02-21T13:18:57.800827Z",
        )


class MockSubspacesQueries:
    @staticmethod
    def get_mock_subspace() -> subspaces.SubspaceData:
        return subspaces.SubspaceData(
            id=1,
            name="Test subspace",
            description="Test subspace",
            treasury=MOCK_USER,
            owner=MOCK_USER,
            creator=MOCK_USER,
            creation_time="2022-02-21T13:18:27.257641Z",
        )

    @staticmethod
    def get_mock_group() -> subspaces.UserGroupData:
        return subspaces.UserGroupData(
            subspace_id=1, id=1, name="Test group", description="Test group", permissions=0
        )

    @staticmethod
    def get_mock_permission_detail() -> subspaces.PermissionDetail:
        return subspaces.PermissionDetail(user=MOCK_USER, permissions=1)


class MockPostsQueries:
    @staticmethod
    def get_mock_post() -> posts.Post:
        return posts.Post(
            post_id="a4469741bb0c0622627810082a5f2e4e54fbbb888f25a4771a5eebc697d30cfc",
            message="Hello, Desmos!",
            created="2022-02-21T13:18:27.257641Z",
            subspace_id=1,
            creator=MOCK_USER,
        )

    @staticmethod
    def get_mock_report() -> posts.Report:
        return posts.Report(
            post_id=MockPostsQueries.get_mock_post().post_id,
            kind="scam",
            message="it's a scam",
            user=MOCK_RECEIVER,
        )

    @staticmethod
    def get_mock_reaction() -> posts.Reaction:
        return posts.Reaction(
            post_id=MockPostsQueries.get_mock_post().post_id,
            owner=MOCK_RECEIVER,
            short_code=":heart:",
            value="heart",
        )


def mock_domain_data() -> DomainData:
    return DomainData(
        dtag_requests=[MockProfilesQueries.get_mock_dtag_transfer_request()],
        chain_links=[MockProfilesQueries.get_mock_chain_link()],
        app_links=[MockProfilesQueries.get_mock_application_link()],
        relationships=[MockProfilesQueries.get_mock_relationship()],
        blocks=[MockProfilesQueries.get_mock_user_block()],
        subspaces=[MockSubspacesQueries.get_mock_subspace()],
        groups=[MockSubspacesQueries.get_mock_group()],
        members={(1, 1): [MOCK_USER]},
        permissions={(1, MOCK_USER): [MockSubspacesQueries.get_mock_permission_detail()]},
        posts=[MockPostsQueries.get_mock_post()],
        reports=[MockPostsQueries.get_mock_report()],
        reactions=[MockPostsQueries.get_mock_reaction()],
    )


class MockDomainService(DomainService):
    """
    Domain service seeded with the mock fixtures. Every request and its
    detected wire shape are recorded, and the service can be taken offline
    to simulate an unreachable channel.
    """

    def __init__(self, users: Iterable[str] = (MOCK_USER,)) -> None:
        directory = MemoryProfileDirectory(
            MockProfilesQueries.get_mock_profile(user) if user == MOCK_USER else new_profile(user, user[:12])
            for user in users
        )
        super().__init__(directory=directory, data=mock_domain_data())
        self.requests: List[Dict[str, Any]] = []
        self.shapes: List[WireShape] = []
        self.offline = False

    def __call__(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        self.requests.append(dict(request))
        if self.offline:
            raise ConnectionError("domain service offline")
        self.shapes.append(detect_shape(request))
        return super().__call__(request)
