# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Tests for the kgateway command line
"""

import json

import httpx
import pytest
import yaml
from click.testing import CliRunner

import cli as kgateway_cli

KERNEL = {
    "id": "6f1c3c1e-0000-4000-8000-000000000000",
    "process_id": 4242,
    "config": {
        "ip": "0.0.0.0",
        "hb_port": 2000,
        "control_port": 2001,
        "shell_port": 2002,
        "iopub_port": 2003,
        "stdin_port": 2004,
    },
    "status": "Running",
    "report_id": "report-1",
}


@pytest.fixture
def gateway_requests(monkeypatch):
    """Route CLI traffic to a canned gateway and record the requests"""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if request.method == "GET" and path == "/kernels":
            return httpx.Response(200, json={"success": True, "data": [KERNEL], "error": None})
        if request.method == "POST" and path == "/kernels":
            return httpx.Response(200, json={"success": True, "data": KERNEL, "error": None})
        if request.method == "DELETE" and path == "/kernels/report-1":
            return httpx.Response(200, json={"success": True, "data": True, "error": None})
        if request.method == "GET" and path == "/kernels/missing":
            return httpx.Response(
                404, json={"success": False, "data": None, "error": "Kernel not found"}
            )
        return httpx.Response(500, text="boom")

    def client(url):
        return httpx.Client(base_url=url, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(kgateway_cli, "_client", client)
    return seen


def test_list(gateway_requests):
    result = CliRunner().invoke(kgateway_cli.cli, ["kernels", "list"])

    assert result.exit_code == 0
    assert json.loads(result.output) == [KERNEL]
    assert str(gateway_requests[0].url) == "http://127.0.0.1:1111/kernels"


def test_launch_sends_report_id(gateway_requests):
    result = CliRunner().invoke(
        kgateway_cli.cli, ["--url", "http://gw:9000/", "-o", "yaml", "kernels", "launch", "report-1"]
    )

    assert result.exit_code == 0
    assert yaml.safe_load(result.output)["report_id"] == "report-1"
    assert json.loads(gateway_requests[0].content) == {"report_id": "report-1"}
    assert gateway_requests[0].url.host == "gw"


def test_kill(gateway_requests):
    result = CliRunner().invoke(kgateway_cli.cli, ["kernels", "kill", "report-1"])

    assert result.exit_code == 0
    assert "Killed kernel for report-1" in result.output


def test_gateway_error_exits_nonzero(gateway_requests):
    result = CliRunner().invoke(kgateway_cli.cli, ["kernels", "get", "missing"])

    assert result.exit_code == 1
    assert "Kernel not found" in result.output


def test_non_json_response(gateway_requests):
    result = CliRunner().invoke(kgateway_cli.cli, ["sysinfo"])

    assert result.exit_code == 1
    assert "Unexpected response (500)" in result.output


def test_config_prints_yaml(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KERNEL_GATEWAY_PYTHON", "/opt/py/bin/python")

    result = CliRunner().invoke(kgateway_cli.cli, ["-o", "yaml", "config"])

    assert result.exit_code == 0
    assert yaml.safe_load(result.output)["kernels"]["python_executable"] == "/opt/py/bin/python"
