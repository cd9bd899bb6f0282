"""
Fixture registry tests.

The in-memory registry stands in for the real one in demos and tests, so it
has to keep the registry's accounting laws: retired + remaining <= issued,
and credits moved by a transfer show up as holder balances one for one.
"""

import pytest

from exceptions import NotFoundError, RegistryRejectedError, UnauthenticatedError
from schemas.registry import ClassStatus, ProjectStatus, RetireRequest, TransferRequest
from services.certificate_ledger import compute_content_hash
from services.registry import InMemoryRegistry, build_adapter, build_registry


def _conserved(registry, class_id):
    cls = registry.get_class(class_id)
    held = sum(registry.holders(class_id).values())
    return cls.retired + cls.remaining + held == cls.issued


class TestSeedData:

    def test_seeded_c1_matches_demo_numbers(self, registry):
        c1 = registry.get_class("C1")
        assert (c1.issued, c1.retired, c1.remaining) == (1000, 150, 850)
        assert c1.status == ClassStatus.FINALIZED

    def test_every_seeded_class_balances(self, registry):
        for cls in registry.list_classes():
            assert cls.retired + cls.remaining <= cls.issued

    def test_project_totals_sum_their_classes(self, registry):
        p1 = registry.get_project("P1")
        assert p1.total_issued == 1500
        assert p1.total_retired == 150

    def test_status_filter(self, registry):
        pending = registry.list_projects(ProjectStatus.PENDING)
        assert [p.id for p in pending] == ["P3"]

    def test_unbalanced_seed_rejected(self):
        with pytest.raises(ValueError):
            InMemoryRegistry(classes=[{
                "id": "CX", "projectId": "P1", "vintage": "2020",
                "issued": 10, "retired": 5, "remaining": 6, "status": "FINALIZED",
            }])

    def test_unknown_ids_raise_not_found(self, registry):
        with pytest.raises(NotFoundError):
            registry.get_class("C404")
        with pytest.raises(NotFoundError):
            registry.get_project("P404")


class TestAuth:

    def test_login_returns_token_resolving_to_identity(self, registry):
        auth = registry.login("buyer@buyerco.local", "Buyer@123")
        identity = registry.resolve_token(auth.token)
        assert identity.id == "user_001"
        assert identity.org_id == "org_001"

    def test_login_email_is_case_insensitive(self, registry):
        assert registry.login("BUYER@buyerco.local", "Buyer@123").user.id == "user_001"

    def test_wrong_password(self, registry):
        with pytest.raises(UnauthenticatedError):
            registry.login("buyer@buyerco.local", "nope")

    def test_logout_revokes_token(self, registry):
        auth = registry.login("buyer@buyerco.local", "Buyer@123")
        registry.logout(auth.token)
        assert registry.resolve_token(auth.token) is None

    def test_garbage_token_resolves_to_none(self, registry):
        assert registry.resolve_token("not-a-jwt") is None

    def test_token_signed_with_other_secret_is_rejected(self):
        issuer = InMemoryRegistry(jwt_secret="one")
        verifier = InMemoryRegistry(jwt_secret="two")
        token = issuer.login("buyer@buyerco.local", "Buyer@123").token
        assert verifier.resolve_token(token) is None


class TestTransfers:

    def test_transfer_moves_supply_to_holder(self, registry):
        receipt = registry.transfer(TransferRequest(to_org_id="org_001", class_id="C1", quantity=50))
        assert receipt.receipt_id == "rcpt_000001"
        assert registry.get_class("C1").remaining == 800
        assert registry.holders("C1") == {"org_001": 50}
        assert _conserved(registry, "C1")

    def test_conservation_across_owners(self, registry):
        registry.transfer(TransferRequest(to_org_id="org_001", class_id="C3", quantity=30))
        registry.transfer(TransferRequest(to_org_id="org_002", class_id="C3", quantity=20))
        assert sum(registry.holders("C3").values()) == 50
        assert registry.get_class("C3").remaining == 230
        assert _conserved(registry, "C3")

    def test_same_idempotency_key_transfers_once(self, registry):
        request = TransferRequest(to_org_id="org_001", class_id="C1", quantity=10, idempotency_key="k1")
        first = registry.transfer(request)
        second = registry.transfer(request)
        assert first.receipt_id == second.receipt_id
        assert registry.holders("C1") == {"org_001": 10}
        assert registry.find_transfer("k1").receipt_id == first.receipt_id

    def test_find_transfer_unknown_key(self, registry):
        assert registry.find_transfer("missing") is None

    def test_oversized_transfer_rejected(self, registry):
        with pytest.raises(RegistryRejectedError) as exc_info:
            registry.transfer(TransferRequest(to_org_id="org_001", class_id="C1", quantity=851))
        assert exc_info.value.status == 409
        assert registry.get_class("C1").remaining == 850

    def test_pending_class_not_transferable(self, registry):
        with pytest.raises(RegistryRejectedError):
            registry.transfer(TransferRequest(to_org_id="org_001", class_id="C4", quantity=1))

    def test_finalizing_a_pending_class(self, registry):
        registry.set_class_status("C4", ClassStatus.FINALIZED)
        registry.transfer(TransferRequest(to_org_id="org_001", class_id="C4", quantity=1))
        with pytest.raises(RegistryRejectedError):
            registry.set_class_status("C4", ClassStatus.CANCELLED)


class TestRetirements:

    def test_retire_moves_balance_to_retired(self, registry):
        registry.transfer(TransferRequest(to_org_id="org_001", class_id="C1", quantity=50))
        result = registry.retire("org_001", RetireRequest(
            class_id="C1",
            quantity=10,
            purpose_hash=compute_content_hash("Corporate offset"),
            beneficiary_hash=compute_content_hash(""),
        ))
        assert result.certificate_id == "cert_000001"
        c1 = registry.get_class("C1")
        assert c1.retired == 160
        assert registry.holders("C1") == {"org_001": 40}
        assert registry.get_project("P1").total_retired == 160
        assert _conserved(registry, "C1")
        assert registry.get_retirement("cert_000001").owner_org_id == "org_001"

    def test_retire_more_than_held_rejected(self, registry):
        with pytest.raises(RegistryRejectedError):
            registry.retire("org_001", RetireRequest(
                class_id="C1", quantity=1, purpose_hash="0x", beneficiary_hash="0x",
            ))
        assert registry.get_class("C1").retired == 150


class TestWiring:

    def test_build_registry_modes(self):
        assert isinstance(build_registry("fixture"), InMemoryRegistry)
        with pytest.raises(ValueError):
            build_registry("carrier-pigeon")

    def test_fixture_mode_has_no_adapter(self):
        assert build_adapter("fixture") is None
