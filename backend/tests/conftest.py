"""
Test Configuration — Fixtures for settings, client state, a fake S3 bucket,
dataset files, and the API test client.

Every test gets its own local data directory and in-memory client state, so
nothing leaks between tests. S3 traffic never leaves the process: the S3
client is given an httpx.MockTransport backed by FakeS3.
"""

import re
from pathlib import Path
from urllib.parse import unquote

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from api.deps import build_dashboard_store, get_dashboard_store, get_state_store
from api.main import app
from core.config import get_settings
from dashboard.state import InMemoryStateStore

BUCKET = "test-dashboard-bucket"
ACCESS_KEY = "AKIDEXAMPLE"
SECRET_KEY = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"

WEEK_HEADER = ",".join(f"w{i}" for i in range(1, 21))


def weeks(*values: float, fill: float = 0) -> str:
    """20 comma-separated weekly values: the given ones, then `fill`."""
    padded = list(values) + [fill] * (20 - len(values))
    return ",".join(str(v) for v in padded)


SAMPLE_DATASET = {
    "metrics.csv": (
        "metric_id,metric_name,unit_value,financial_value\n"
        "demand,Total Demand,1200,36000\n"
        "fillrate,Fill Rate,94.25,94.25\n"
    ),
    "products.csv": (
        "product_family,product_id\n"
        "Beverages,P1\n"
        "Beverages,P2\n"
        "Snacks,P3\n"
    ),
    "measures.csv": (
        f"measure_id,measure_name,product_id,location_id,{WEEK_HEADER}\n"
        f"demand_unit_value,Demand,P1,L1,{weeks(10, 5)}\n"
        f"demand_unit_value,Demand,P1,L1,{weeks(20, 5)}\n"
        f"demand_unit_value,Demand,P3,L2,{weeks(7)}\n"
        f"inventory_days,Days of Supply,P1,L1,{weeks(10)}\n"
        f"inventory_days,Days of Supply,P2,L2,{weeks(30)}\n"
    ),
    "recommendations.csv": (
        "id,source,name,type,severity,status,action_status,start_date,completion_date,created_date\n"
        'REC-1,recommendation,"Expedite P1, L1",expedite_order,critical,open,,,,2025-03-01\n'
        "REC-2,recommendation,Transfer P3,stock_transfer,high,open,,,,2025-03-02\n"
    ),
    "recommendations_mapping.csv": (
        "recommendation_id,display_name\n"
        "REC-1,Expedite PO\n"
        "REC-2,Stock Transfer\n"
    ),
    "segmentation.csv": (
        "product_id,ABC_value,XYZ_value,on_hand_unit,on_hand_financial,target_unit,target_financial,on_hand_days,target_days\n"
        "P1,A,X,100,1000,80,800,10,8\n"
        "P2,A,X,50,500,60,600,20,12\n"
        "P3,C,Z,5,50,10,100,40,30\n"
    ),
}


def write_dataset(directory: Path, files: dict[str, str]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        (directory / name).write_text(content, encoding="utf-8")
    return directory


# ── Fake S3 ───────────────────────────────────────────────────────────────


class FakeS3:
    """In-memory bucket speaking just enough of the S3 REST API."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: tuple[int, str] | None = None
        self.transport = httpx.MockTransport(self.handle)

    def put(self, bucket: str, key: str, content: str | bytes) -> None:
        self.objects[(bucket, key)] = content.encode("utf-8") if isinstance(content, str) else content

    def put_dataset(self, bucket: str, folder: str, files: dict[str, str]) -> None:
        for name, content in files.items():
            self.put(bucket, f"{folder}/{name}", content)

    def _list_xml(self, bucket: str, prefix: str, delimiter: str | None) -> str:
        keys = sorted(k for b, k in self.objects if b == bucket and k.startswith(prefix))
        if delimiter:
            prefixes = sorted({prefix + k[len(prefix) :].split(delimiter)[0] + delimiter for k in keys if delimiter in k[len(prefix) :]})
            blocks = "".join(f"<CommonPrefixes><Prefix>{p}</Prefix></CommonPrefixes>" for p in prefixes)
        else:
            blocks = "".join(
                f"<Contents>\n  <Key>{k}</Key>\n  <Size>{len(self.objects[(bucket, k)])}</Size>\n</Contents>"
                for k in keys
            )
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
            f"<Name>{bucket}</Name><Prefix>{prefix}</Prefix><IsTruncated>false</IsTruncated>"
            f"{blocks}</ListBucketResult>"
        )

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            status, body = self.fail_with
            return httpx.Response(status, text=body)
        if "Authorization" not in request.headers:
            return httpx.Response(403, text="<Error><Code>AccessDenied</Code></Error>")

        bucket = request.url.host.split(".s3.")[0]
        key = unquote(request.url.raw_path.decode("ascii").split("?")[0].lstrip("/"))

        if request.method == "GET" and not key:
            params = request.url.params
            return httpx.Response(200, text=self._list_xml(bucket, params.get("prefix", ""), params.get("delimiter")))
        if request.method == "GET":
            content = self.objects.get((bucket, key))
            if content is None:
                return httpx.Response(404, text="<Error><Code>NoSuchKey</Code></Error>")
            return httpx.Response(200, content=content)
        if request.method == "PUT":
            self.objects[(bucket, key)] = request.content
            return httpx.Response(200)
        return httpx.Response(405)


def authorization_signature(request: httpx.Request) -> str:
    match = re.search(r"Signature=([0-9a-f]{64})", request.headers["Authorization"])
    assert match is not None
    return match.group(1)


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def local_data_dir(tmp_path: Path) -> Path:
    return write_dataset(tmp_path / "local_data", SAMPLE_DATASET)


@pytest.fixture
def settings(monkeypatch, tmp_path, local_data_dir):
    """Settings pointing at the per-test data dir, state file and bucket."""
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("LOCAL_DATA_DIR", str(local_data_dir))
    monkeypatch.setenv("STATE_FILE", str(tmp_path / "state.json"))
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", ACCESS_KEY)
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", SECRET_KEY)
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("S3_BUCKET", BUCKET)
    monkeypatch.setenv("S3_ENDPOINT_HOST", "")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def state():
    return InMemoryStateStore()


@pytest.fixture
def fake_s3():
    return FakeS3()


@pytest.fixture
def dashboard_store(settings, state, fake_s3):
    return build_dashboard_store(state, s3_transport=fake_s3.transport)


@pytest.fixture
async def client(dashboard_store, state):
    """Async API client with the store and state injected."""
    app.dependency_overrides[get_dashboard_store] = lambda: dashboard_store
    app.dependency_overrides[get_state_store] = lambda: state

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
