import pytest

from app import _leaves_json, app
from models import CalculationResult, Placement, Position, Rotation


@pytest.fixture()
def client():
    app.config.update(TESTING=True)
    with app.test_client() as c:
        yield c


PROBLEM = {
    "grid": {"cells": ["#..", "...", "..."]},
    "chips": ["3L", {"shape": "2", "rotation": 90, "cost": 2}, "1"],
    "config": {"prune_threshold": 3},
}


def test_search_returns_sorted_leaves(client):
    resp = client.post("/search", json=dict(PROBLEM, workers=1, frontier_depth=1, limit=5))
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["ok"] is True
    assert body["leaf_count"] >= len(body["leaves"])
    assert len(body["leaves"]) == 5
    counts = [len(leaf["placements"]) for leaf in body["leaves"]]
    assert counts == sorted(counts, reverse=True)
    assert body["meta"]["config"]["prune_threshold"] == 3


def test_search_rejects_unknown_shape(client):
    resp = client.post("/search", json={"grid": {"width": 2, "height": 2}, "chips": ["7Q"]})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["ok"] is False
    assert body["reason"].startswith("Bad input")

    snap = client.get("/progress").get_json()
    assert snap["status"] == "Error"
    assert snap["done"] is True


def test_search_rejects_non_integer_workers(client):
    resp = client.post("/search", json=dict(PROBLEM, workers="many"))
    assert resp.status_code == 400


def test_jobs_then_run_matches_search(client):
    jobs = client.post("/jobs", json=dict(PROBLEM, depth=2)).get_json()
    assert jobs["ok"] is True
    assert len(jobs["jobs"]) > 1

    total = 0
    for job in jobs["jobs"]:
        resp = client.post("/jobs/run", json={
            "chips": PROBLEM["chips"], "config": PROBLEM["config"], "job": job,
        })
        assert resp.status_code == 200
        total += resp.get_json()["leaf_count"]

    direct = client.post("/search", json=dict(PROBLEM, workers=1, frontier_depth=0)).get_json()
    assert total == direct["leaf_count"]


def test_run_job_rejects_missing_chips(client):
    job = client.post("/jobs", json=dict(PROBLEM, depth=0)).get_json()["jobs"][0]
    resp = client.post("/jobs/run", json={"chips": ["1"], "job": job})
    assert resp.status_code == 400
    assert "not sent" in resp.get_json()["reason"]


def test_progress_is_never_cached(client):
    resp = client.get("/progress")
    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store, max-age=0"
    assert "run_id" in resp.get_json()


def test_leaves_json_orders_by_count_then_cost():
    one = Placement(0, Position(0, 0), Rotation.CW0)
    two = Placement(1, Position(1, 0), Rotation.CW90)
    leaves = [
        CalculationResult((one,), 0),
        CalculationResult((one, two), 5),
        CalculationResult((one, two), 1),
    ]
    out = _leaves_json(leaves, 2)
    assert [leaf["correction_cost"] for leaf in out] == [1, 5]


def test_search_can_write_outputs(client, tmp_path, monkeypatch):
    import app as app_module

    monkeypatch.setattr(app_module, "BASE_DIR", str(tmp_path))
    resp = client.post("/search", json=dict(PROBLEM, workers=1, limit=3, save=True))
    body = resp.get_json()
    assert body["outputs"]["leaves"].endswith("leaves.txt")
    assert (tmp_path / body["outputs"]["leaves"]).read_text(encoding="utf-8").startswith("leaf 1:")
    assert "<svg" in (tmp_path / body["outputs"]["layout"]).read_text(encoding="utf-8")


def test_search_limit_zero_returns_every_leaf(client):
    resp = client.post("/search", json=dict(PROBLEM, workers=1, limit=0))
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["leaf_count"] > 5
    assert len(body["leaves"]) == body["leaf_count"]
