import json

from jointstream import service


def test_parse_args():
    args = service.parse_args(["-c", "site.yaml", "--port", "8080", "--dry-run"])

    assert args.config == "site.yaml"
    assert args.port == 8080
    assert args.host is None
    assert args.dry_run is True


def test_dry_run_prints_resolved_config(tmp_path, monkeypatch, capsys):
    path = tmp_path / "site.yaml"
    path.write_text("device:\n  host: 10.1.1.5\nlogging:\n  level: WARNING\n")
    for name in ("PLC_HOST", "PLC_PORT", "PLC_UNIT_ID", "PLC_TIMEOUT_S", "PORT"):
        monkeypatch.delenv(name, raising=False)
    applied = []
    monkeypatch.setattr(service, "configure_all", lambda *args: applied.append(args))

    code = service.main(["--config", str(path), "--port", "4100", "--dry-run"])

    assert code == 0
    resolved = json.loads(capsys.readouterr().out)
    assert resolved["device"]["host"] == "10.1.1.5"
    assert resolved["server"]["port"] == 4100
    assert applied[0][0] == "WARNING"


def test_missing_config_exits_nonzero(tmp_path):
    assert service.main(["--config", str(tmp_path / "nope.yaml"), "--dry-run"]) == 1


def test_local_ips_skip_loopback():
    ips = service.get_local_ips()

    assert set(ips) == {"ipv4", "ipv6"}
    assert not any(ip.startswith("127.") for ip in ips["ipv4"])
    assert "::1" not in ips["ipv6"]
