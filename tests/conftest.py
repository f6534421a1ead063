"""Shared fixtures for the catalogue tests."""
import pytest

from pentest_catalogue.models import Tool


def make_tool(tool_id, **overrides):
    data = {"id": tool_id, "name": tool_id, "summary": f"{tool_id} summary"}
    data.update(overrides)
    return Tool.from_dict(data)


@pytest.fixture
def sample_tools():
    return [
        make_tool("nmap", name="Nmap", summary="Network scanner", categories=["network", "recon"],
                  tags=["port-scan"], platforms=["linux", "windows"], license="GPL-2.0",
                  maturity="stable", stars=9000, added_at="2024-01-10T00:00:00Z",
                  related_tools=["masscan", "missing-tool"]),
        make_tool("burp", name="Burp Suite", summary="Web proxy", categories=["web"],
                  tags=["proxy", "http"], platforms=["linux", "macos", "windows"],
                  license="Proprietary", maturity="active", stars=None,
                  added_at="2023-06-01"),
        make_tool("masscan", name="masscan", summary="Fast TCP port scanner", categories=["network"],
                  tags=["Port-Scan"], platforms=["linux"], license="AGPL-3.0",
                  maturity="experimental", stars=22000, similar_tools=["nmap"]),
        make_tool("sqlmap", name="sqlmap", summary="SQL injection automation", categories=["web", "exploitation"],
                  tags=["sqli"], platforms=["linux", "macos"], license="GPL-2.0",
                  maturity="archived", stars=30000, added_at="2025-02-01T12:00:00+00:00"),
    ]
