"""CLI tests for 'stackdock machine', run as a subprocess."""

import json

import pytest

# Keeps the developer's OpenStack environment out of the CLI runs
_CLEAN_ENV = {
    "OS_AUTH_URL": "",
    "OS_USERNAME": "",
    "OS_PASSWORD": "",
    "OS_TENANT_NAME": "",
    "OS_TENANT_ID": "",
    "OS_REGION_NAME": "",
    "OS_ENDPOINT_TYPE": "",
}

_NO_PROXY = {"NO_PROXY": "127.0.0.1", "no_proxy": "127.0.0.1"}


@pytest.fixture
def stored_machine(tmp_path):
    """A stored machine with a cached IP, so no cloud call is needed to reach it."""
    machine_dir = tmp_path / "machines" / "box"
    machine_dir.mkdir(parents=True)
    data = {
        "driver": "openstack",
        "spec": {"auth_url": "http://keystone.test:5000/v2.0", "username": "demo", "ssh_user": "ubuntu", "ssh_port": 2222},
        "state": {"machine_name": "box", "key_pair_name": "box", "instance_id": "instance-1", "ip": "192.0.2.1"},
    }
    (machine_dir / "machine.json").write_text(json.dumps(data))
    return tmp_path


def test_help(run_cli):
    rc, stdout, _ = run_cli("--help")
    assert rc == 0
    assert "machine" in stdout


def test_machine_create_help_lists_driver_flags(run_cli):
    rc, stdout, _ = run_cli("machine", "create", "--help")
    assert rc == 0
    assert "--openstack-flavor-name" in stdout
    assert "OS_AUTH_URL" in stdout
    assert "--config" in stdout


def test_machine_requires_action(run_cli):
    rc, _, stderr = run_cli("machine")
    assert rc == 2
    assert "required" in stderr


def test_create_invalid_port(run_cli, tmp_path):
    rc, _, stderr = run_cli("machine", "create", "--storage-path", str(tmp_path), "--openstack-ssh-port", "ssh")
    assert rc == 2
    assert "invalid int value" in stderr


def test_create_missing_auth_url(run_cli, tmp_path):
    rc, stdout, _ = run_cli("machine", "create", "--storage-path", str(tmp_path), env=_CLEAN_ENV)
    assert rc == 1
    assert "OS_AUTH_URL" in stdout
    assert not (tmp_path / "machines").exists()


def test_create_exclusive_flavor(run_cli, tmp_path):
    config = tmp_path / "machine.yaml"
    config.write_text(
        "auth-url: http://keystone.test:5000/v2.0\n"
        "username: demo\n"
        "password: s3cret-pass\n"
        "tenant-name: demo\n"
        "flavor-name: m1.small\n"
    )
    rc, stdout, _ = run_cli(
        "machine", "create", "--config", str(config), "--storage-path", str(tmp_path), "--openstack-flavor-id", "1",
        env=_CLEAN_ENV,
    )
    assert rc == 1
    assert "Either Flavor name or Flavor id must be specified, not both" in stdout


def test_status_unknown_machine(run_cli, tmp_path):
    rc, stdout, _ = run_cli("machine", "status", "ghost", "--storage-path", str(tmp_path))
    assert rc == 1
    assert "Machine 'ghost' not found" in stdout


def test_upgrade_not_available(run_cli, stored_machine):
    rc, stdout, _ = run_cli("machine", "upgrade", "box", "--storage-path", str(stored_machine))
    assert rc == 1
    assert "Upgrade is currently not available" in stdout


def test_ip_and_url_from_store(run_cli, stored_machine):
    rc, stdout, _ = run_cli("machine", "ip", "box", "--storage-path", str(stored_machine))
    assert rc == 0
    assert stdout.strip() == "192.0.2.1"

    rc, stdout, _ = run_cli("machine", "url", "box", "--storage-path", str(stored_machine))
    assert rc == 0
    assert stdout.strip() == "tcp://192.0.2.1:2376"


def test_ssh_prints_command(run_cli, stored_machine):
    rc, stdout, _ = run_cli("machine", "ssh", "--storage-path", str(stored_machine), "box", "uptime")
    assert rc == 0
    line = stdout.strip()
    assert line.startswith("ssh ")
    assert "-p 2222" in line
    assert "ubuntu@192.0.2.1" in line
    assert "sudo sh -c" in line
    assert line.count("uptime") == 1


def _store(tmp_path, name, state, auth_url="http://keystone.test:5000/v2.0"):
    machine_dir = tmp_path / "machines" / name
    machine_dir.mkdir(parents=True)
    data = {"driver": "openstack", "spec": {"auth_url": auth_url, "username": "demo"}, "state": state}
    (machine_dir / "machine.json").write_text(json.dumps(data))
    return machine_dir


def test_rm_without_instance_id_drops_record(run_cli, tmp_path):
    machine_dir = _store(tmp_path, "half", {"machine_name": "half", "key_pair_name": "half"})

    rc, stdout, _ = run_cli("machine", "rm", "half", "--storage-path", str(tmp_path))

    assert rc == 0
    assert "no instance id" in stdout
    assert not machine_dir.exists()


def test_rm_cloud_failure_keeps_record(run_cli, tmp_path):
    # Nothing listens on port 1, so authentication fails with a connection error
    machine_dir = _store(tmp_path, "gone", {"machine_name": "gone", "instance_id": "instance-1"}, "http://127.0.0.1:1/v2.0")

    rc, stdout, _ = run_cli("machine", "rm", "gone", "--storage-path", str(tmp_path), env=_NO_PROXY)

    assert rc == 1
    assert "Authentication failed" in stdout
    assert (machine_dir / "machine.json").exists()


def test_rm_force_drops_record_after_cloud_failure(run_cli, tmp_path):
    machine_dir = _store(tmp_path, "gone", {"machine_name": "gone", "instance_id": "instance-1"}, "http://127.0.0.1:1/v2.0")

    rc, stdout, _ = run_cli("machine", "rm", "gone", "--force", "--storage-path", str(tmp_path), env=_NO_PROXY)

    assert rc == 0
    assert "removing the local record anyway" in stdout
    assert not machine_dir.exists()
