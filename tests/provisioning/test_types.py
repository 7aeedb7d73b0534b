"""Unit tests for shared data types and state normalization."""

from stackdock.provisioning.types import (
    AddressType,
    InstanceState,
    MachineSpec,
    ProvisioningState,
    normalize_state,
)


# ── normalize_state ──────────────────────────────────────────────


def test_normalize_state_table():
    expected = {
        "ACTIVE": InstanceState.RUNNING,
        "PAUSED": InstanceState.PAUSED,
        "SUSPENDED": InstanceState.SAVED,
        "SHUTOFF": InstanceState.STOPPED,
        "BUILDING": InstanceState.STARTING,
        "BUILD": InstanceState.STARTING,
        "ERROR": InstanceState.ERROR,
        "BOGUS": InstanceState.UNKNOWN,
        "": InstanceState.UNKNOWN,
        None: InstanceState.UNKNOWN,
    }
    for status, state in expected.items():
        assert normalize_state(status) == state, status


def test_normalize_state_is_case_sensitive():
    assert normalize_state("active") == InstanceState.UNKNOWN


def test_instance_state_values():
    assert InstanceState.RUNNING.value == "running"
    assert InstanceState.SAVED == "saved"


# ── MachineSpec ──────────────────────────────────────────────────


def test_machine_spec_defaults():
    spec = MachineSpec()
    assert spec.ssh_user == "root"
    assert spec.ssh_port == 22
    assert spec.install_docker is True
    assert spec.security_groups == ()


def test_machine_spec_address_type():
    assert MachineSpec().address_type == AddressType.FIXED
    assert MachineSpec(floating_ip_pool="public").address_type == AddressType.FLOATING


def test_machine_spec_dict_round_trip():
    spec = MachineSpec(auth_url="http://x", security_groups=("default", "web"), ssh_port=2222)
    restored = MachineSpec.from_dict(spec.to_dict())
    assert restored == spec
    assert spec.to_dict()["security_groups"] == ["default", "web"]


def test_machine_spec_from_dict_ignores_unknown_keys():
    spec = MachineSpec.from_dict({"username": "demo", "legacy_field": 1})
    assert spec.username == "demo"


# ── ProvisioningState ────────────────────────────────────────────


def test_provisioning_state_starts_empty():
    state = ProvisioningState()
    assert state.instance_id == ""
    assert state.ip == ""
    assert state.flavor_id == ""


def test_provisioning_state_from_dict():
    state = ProvisioningState.from_dict({"instance_id": "i-1", "ip": "1.2.3.4", "extra": True})
    assert state.instance_id == "i-1"
    assert state.ip == "1.2.3.4"
