"""
Tests for the probe battery, the diagnostics collector and the SSH transport.
"""

import pytest
from unittest.mock import AsyncMock

from inquiry_board.infrastructure.remote_shell import EXIT_NOT_FOUND, IRemoteShell, SSHPassRemoteShell
from inquiry_board.triage.application import DiagnosticsCollector, server_context_from_record
from inquiry_board.triage.domain import BASE_PROBES, ServerContext, build_probe_battery

from tests.fakes import RecordingShell

BASE_NAMES = [name for name, _ in BASE_PROBES]


def make_server(**overrides) -> ServerContext:
    values = dict(
        site_name="shop",
        display_name="Shop",
        server_ip="203.0.113.10",
        ssh_user="deploy",
        ssh_password="ssh-pw",
    )
    values.update(overrides)
    return ServerContext(**values)


class TestProbeBattery:

    def test_fixed_battery_order(self):
        assert BASE_NAMES == [
            "uptime", "disk", "memory", "cpu_load", "web_server", "mysql_status",
            "web_error_log", "php_error_log", "php_fpm_status", "listening_ports", "recent_cron",
        ]

    def test_commands_carry_fallbacks(self):
        commands = dict(BASE_PROBES)

        assert "nginx" in commands["web_server"] and "echo \"unknown\"" in commands["web_server"]
        assert "mariadb" in commands["mysql_status"]

    def test_http_probe_added_for_site_url(self):
        names = [name for name, _ in build_probe_battery(site_url="https://shop.example.com/")]

        assert names == BASE_NAMES + ["site_http_check"]
        command = dict(build_probe_battery(site_url="shop.example.com"))["site_http_check"]
        assert "--max-time 10 https://shop.example.com 2>&1" in command
        assert "--max-time 10 http://shop.example.com 2>&1" in command

    def test_database_probes_added_for_db_password(self):
        probes = dict(build_probe_battery(db_user="app", db_password="it's secret"))

        assert list(probes)[-2:] == ["db_check", "db_process"]
        assert "SHOW DATABASES;" in probes["db_check"]
        assert "SHOW PROCESSLIST;" in probes["db_process"]
        # Credentials are shell-quoted for the remote shell
        assert "-p'it'\"'\"'s secret'" in probes["db_check"]

    def test_no_database_probes_without_password(self):
        names = [name for name, _ in build_probe_battery(db_user="app", db_password="")]
        assert "db_check" not in names


class TestDiagnosticsCollector:

    @pytest.mark.asyncio
    async def test_returns_none_without_minimum_fields(self, settings):
        shell = RecordingShell()
        collector = DiagnosticsCollector(shell, settings)

        assert await collector.collect(None) is None
        assert await collector.collect(make_server(server_ip="")) is None
        assert await collector.collect(make_server(ssh_password="")) is None
        assert shell.calls == []

    @pytest.mark.asyncio
    async def test_runs_every_probe_with_server_credentials(self, settings):
        shell = RecordingShell(("up 3 days", 0))
        collector = DiagnosticsCollector(shell, settings)

        bundle = await collector.collect(make_server(site_url="shop.example.com", db_password="db-pw"))

        assert list(bundle) == BASE_NAMES + ["site_http_check", "db_check", "db_process"]
        assert all(value == "up 3 days" for value in bundle.values())
        assert {call["host"] for call in shell.calls} == {"203.0.113.10"}
        assert {call["user"] for call in shell.calls} == {"deploy"}
        assert {call["password"] for call in shell.calls} == {"ssh-pw"}
        assert {call["timeout"] for call in shell.calls} == {settings.probe_timeout_seconds}

    @pytest.mark.asyncio
    async def test_unreachable_host_still_yields_full_mapping(self, settings):
        shell = RecordingShell(("ssh: connect to host 203.0.113.10 port 22: Connection timed out", 255))
        collector = DiagnosticsCollector(shell, settings)

        bundle = await collector.collect(make_server())

        assert list(bundle) == BASE_NAMES
        assert all("Connection timed out" in value for value in bundle.values())

    @pytest.mark.asyncio
    async def test_transport_exception_is_captured_per_probe(self, settings):
        shell = AsyncMock(spec=IRemoteShell)
        shell.run.side_effect = [OSError("network down")] + [("fine", 0)] * (len(BASE_NAMES) - 1)
        collector = DiagnosticsCollector(shell, settings)

        bundle = await collector.collect(make_server())

        assert bundle["uptime"].startswith("진단 실패")
        assert "network down" in bundle["uptime"]
        assert bundle["disk"] == "fine"
        assert len(bundle) == len(BASE_NAMES)

    @pytest.mark.asyncio
    async def test_silent_failure_gets_descriptive_output(self, settings):
        collector = DiagnosticsCollector(RecordingShell(("", 1)), settings)

        bundle = await collector.collect(make_server())

        assert bundle["uptime"] == "명령 실패 (exit 1)"


class TestServerContext:

    def test_secrets_are_decrypted_in_memory(self, vault):
        class Record:
            site_name = "shop"
            display_name = "Shop"
            server_ip = "203.0.113.10"
            ssh_user = ""
            ssh_password = vault.encrypt("ssh-pw")
            db_user = "app"
            db_password = "legacy-plain"
            site_url = "shop.example.com"
            admin_url = "shop.example.com/admin"

        server = server_context_from_record(Record(), vault)

        assert server.ssh_password == "ssh-pw"
        assert server.db_password == "legacy-plain"
        assert server.ssh_user == "root"
        assert "ssh-pw" not in repr(server)

    def test_without_vault_shell_access_is_disabled(self, vault):
        class Record:
            site_name = "shop"
            display_name = "Shop"
            server_ip = "203.0.113.10"
            ssh_user = "root"
            ssh_password = vault.encrypt("ssh-pw")
            db_user = "root"
            db_password = ""
            site_url = ""
            admin_url = ""

        assert server_context_from_record(Record(), None).has_shell_access is False


class TestSSHPassRemoteShell:

    def test_argv_shape(self):
        shell = SSHPassRemoteShell(connect_timeout=7)

        argv = shell.build_argv("203.0.113.10", "deploy", "pw", "uptime")

        assert argv[:4] == ["sshpass", "-p", "pw", "ssh"]
        assert "StrictHostKeyChecking=no" in argv
        assert "ConnectTimeout=7" in argv
        assert "UserKnownHostsFile=/dev/null" in argv
        assert argv[-2:] == ["deploy@203.0.113.10", "uptime"]

    @pytest.mark.asyncio
    async def test_missing_binary_reports_instead_of_raising(self, tmp_path):
        shell = SSHPassRemoteShell(sshpass_binary=str(tmp_path / "no-such-sshpass"))

        output, code = await shell.run("203.0.113.10", "root", "pw", "uptime", timeout=5)

        assert code == EXIT_NOT_FOUND
        assert output
