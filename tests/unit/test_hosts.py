"""Unit tests for hosts file management"""

import os

import pytest

from localdev.utils.hosts import HostsFile


@pytest.fixture
def hosts(fake_runner, hosts_file):
    return HostsFile(fake_runner, hosts_file)


def test_add_appends_entry(hosts, hosts_file, fake_runner):
    assert hosts.add("argocd.local.io") is True

    assert hosts_file.read_text() == "127.0.0.1 localhost\n127.0.0.1 argocd.local.io\n"
    assert fake_runner.calls == []


def test_add_is_idempotent(hosts, hosts_file):
    hosts.add("argocd.local.io")
    assert hosts.add("argocd.local.io") is False

    assert hosts_file.read_text().count("argocd.local.io") == 1


def test_add_matches_whole_hostname(hosts, hosts_file):
    hosts_file.write_text("127.0.0.1 my-argocd.local.io.example\n")

    assert hosts.add("argocd.local.io") is True


def test_add_ignores_commented_entries(hosts, hosts_file):
    hosts_file.write_text("# 127.0.0.1 music.local.io\n")

    assert hosts.add("music.local.io") is True
    assert hosts.contains("music.local.io")


def test_add_handles_missing_trailing_newline(hosts, hosts_file):
    hosts_file.write_text("127.0.0.1 localhost")

    hosts.add("music.local.io")

    assert hosts_file.read_text() == "127.0.0.1 localhost\n127.0.0.1 music.local.io\n"


def test_add_uses_sudo_when_not_writable(hosts, fake_runner, monkeypatch):
    monkeypatch.setattr(os, "access", lambda path, mode: False)

    hosts.add("music.local.io")

    assert fake_runner.calls == [["sudo", "tee", "-a", str(hosts.path)]]
    assert fake_runner.inputs == ["127.0.0.1 music.local.io\n"]


def test_remove_matching_keeps_backup(hosts, hosts_file):
    hosts_file.write_text(
        "127.0.0.1 localhost\n"
        "127.0.0.1 argocd.local.io\n"
        "127.0.0.1 music.local.io\n"
    )

    removed = hosts.remove_matching("local.io")

    assert removed == ["127.0.0.1 argocd.local.io", "127.0.0.1 music.local.io"]
    assert hosts_file.read_text() == "127.0.0.1 localhost\n"
    backup = hosts_file.with_name("hosts.bak")
    assert "music.local.io" in backup.read_text()


def test_remove_matching_nothing_to_do(hosts, hosts_file):
    assert hosts.remove_matching("music.local.io") == []
    assert not hosts_file.with_name("hosts.bak").exists()


def test_remove_matching_via_sudo(hosts, hosts_file, fake_runner, monkeypatch):
    hosts_file.write_text("127.0.0.1 localhost\n127.0.0.1 music.local.io\n")
    monkeypatch.setattr(os, "access", lambda path, mode: False)

    hosts.remove_matching("music.local.io")

    assert fake_runner.calls[0] == ["sudo", "cp", str(hosts_file), str(hosts_file) + ".bak"]
    assert fake_runner.calls[1] == ["sudo", "tee", str(hosts_file)]
    assert fake_runner.inputs[1] == "127.0.0.1 localhost\n"


def test_entries_matching(hosts, hosts_file):
    hosts_file.write_text("127.0.0.1 a.local.io\n# 127.0.0.1 b.local.io\n127.0.0.1 c.other\n")

    assert hosts.entries_matching("local.io") == ["127.0.0.1 a.local.io"]


def test_missing_file_reads_empty(fake_runner, tmp_path):
    hosts = HostsFile(fake_runner, tmp_path / "nope")

    assert hosts.read() == ""
    assert not hosts.contains("local.io")


@pytest.mark.parametrize("pattern", ["", "   "])
def test_remove_matching_rejects_empty_pattern(hosts, hosts_file, pattern):
    hosts_file.write_text("127.0.0.1 localhost\n127.0.0.1 music.local.io\n")

    with pytest.raises(ValueError, match="empty pattern"):
        hosts.remove_matching(pattern)

    assert hosts_file.read_text() == "127.0.0.1 localhost\n127.0.0.1 music.local.io\n"
