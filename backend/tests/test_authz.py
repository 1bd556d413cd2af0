import pytest

from equiprent.errors import Forbidden
from equiprent.security.authz import (
    ACTION_POLICY, HIERARCHY, can_access, can_access_delivery_note, can_access_delivery_note_item,
    can_access_project, can_access_purchase_order, can_access_purchase_order_item, can_perform,
    require_access, require_action,
)

from conftest import A1, D1, D2, GHOST, I1, I2, M1, MISSING, P1, P2, PO1, PO2, POI1, U1, U2

CHAIN_P1 = [("project", P1), ("purchase_order", PO1), ("purchase_order_item", POI1),
            ("delivery_note", D1), ("delivery_note_item", I1)]


def test_scenario_owner(store):
    assert can_access_project(store, U1, P1)
    assert can_access_purchase_order(store, U1, PO1)
    assert can_access_purchase_order_item(store, U1, POI1)
    assert can_access_delivery_note(store, U1, D1)
    assert can_access_delivery_note_item(store, U1, I1)


def test_scenario_stranger(store):
    assert not can_access_project(store, U2, P1)
    assert not can_access_purchase_order(store, U2, PO1)
    assert not can_access_delivery_note(store, U2, D1)
    assert not can_access_delivery_note_item(store, U2, I1)


@pytest.mark.parametrize("principal", [M1, A1])
@pytest.mark.parametrize("resource,resource_id", CHAIN_P1)
def test_privileged_roles_see_everything(store, principal, resource, resource_id):
    assert can_access(store, principal, resource, resource_id)


@pytest.mark.parametrize("resource,resource_id", [("project", P2), ("purchase_order", PO2),
                                                  ("delivery_note", D2), ("delivery_note_item", I2)])
def test_denial_is_transitive(store, resource, resource_id):
    assert not can_access_project(store, U1, P2)
    assert not can_access(store, U1, resource, resource_id)


def test_owner_keeps_access_with_plain_user_role(store):
    store.roles[U1] = "user"
    assert can_access_project(store, U1, P1)


@pytest.mark.parametrize("principal", [U1, M1, A1])
@pytest.mark.parametrize("resource", list(HIERARCHY))
def test_missing_resource_denies(store, principal, resource):
    assert can_access(store, principal, resource, MISSING) is False


def test_dangling_parent_reference_denies(store):
    store.add_row("dn_items", MISSING, delivery_note_id="30000000-0000-4000-8000-00000000dead")
    assert not can_access_delivery_note_item(store, M1, MISSING)


def test_unknown_principal_denied(store):
    assert not can_access_delivery_note_item(store, GHOST, I1)


def test_store_failure_denies(store):
    store.unavailable = True
    for resource, resource_id in CHAIN_P1:
        assert can_access(store, A1, resource, resource_id) is False


def test_one_lookup_per_level(store):
    assert can_access_delivery_note_item(store, U1, I1)
    assert [c[0] for c in store.calls] == [
        "get_parent_id", "get_parent_id", "get_parent_id", "get_project", "get_role", "get_role",
    ]
    assert store.calls[:3] == [
        ("get_parent_id", "dn_items", I1),
        ("get_parent_id", "delivery_notes", D1),
        ("get_parent_id", "purchase_orders", PO1),
    ]


def test_parent_link_comes_from_store(store):
    # re-parenting I1 under the manager's note moves it out of U1's reach
    store.tables["dn_items"][I1]["delivery_note_id"] = D2
    assert not can_access_delivery_note_item(store, U1, I1)


def test_no_caching_between_checks(store):
    assert can_access_purchase_order(store, M1, PO1)
    store.roles[M1] = "user"
    assert not can_access_purchase_order(store, M1, PO1)


def test_unknown_resource_type_is_a_programming_error(store):
    with pytest.raises(ValueError):
        can_access(store, U1, "vendor", P1)


def test_return_processing_is_role_gated(store):
    assert can_access_delivery_note_item(store, U1, I1)
    assert not can_perform(store, U1, "return:process")
    assert can_perform(store, M1, "return:process")
    assert can_perform(store, A1, "return:process")


def test_admin_only_actions(store):
    assert can_perform(store, A1, "audit_log:read")
    assert not can_perform(store, M1, "audit_log:read")


def test_unknown_action_denies(store):
    assert "launch:missiles" not in ACTION_POLICY
    assert not can_perform(store, A1, "launch:missiles")


def test_require_access_raises_the_same_error_for_missing_and_denied(store):
    with pytest.raises(Forbidden) as denied:
        require_access(store, U2, "project", P1)
    with pytest.raises(Forbidden) as missing:
        require_access(store, U2, "project", MISSING)
    assert str(denied.value) == str(missing.value) == "Forbidden"
    require_access(store, U1, "project", P1)


def test_require_action(store):
    with pytest.raises(Forbidden):
        require_action(store, U1, "return:process")
    require_action(store, M1, "return:process")
