import pathlib

from portal.version import parse_version, read_version


def test_version_file_exists():
    root = pathlib.Path(__file__).resolve().parents[1]
    version_path = root / "VERSION"
    assert version_path.exists(), "VERSION file must exist"
    assert version_path.read_text(encoding="utf-8").strip() != "", "VERSION must not be empty"


def test_read_version_is_semantic():
    assert len(parse_version(read_version())) == 3


def test_health_reports_version(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["version"] == read_version()
    assert body["status"] == "ok"
    assert body["db_ok"] is True


def test_health_degraded_without_contract_registry(client, contratos):
    contratos.ping.return_value = False
    body = client.get("/health").json()
    assert body["status"] == "degraded"
    assert body["contratos_ok"] is False
