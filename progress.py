from __future__ import annotations

import json
import logging
import os
import time
import threading
from pathlib import Path
from typing import Any, Dict, Optional

# ------------------------------
# Shared run state, guarded by one lock and mirrored to a JSON file so a
# poller in another process sees the same numbers.
# ------------------------------

PROGRESS_LOCK = threading.Lock()


def _state_file_path() -> Path:
    configured = os.environ.get("PROGRESS_STATE_FILE")
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / "logs" / "progress_state.json"


STATE_FILE = _state_file_path()
STATE_FILE_TMP = STATE_FILE.with_name(STATE_FILE.name + ".tmp")
_LAST_STATE_MTIME: float = 0.0


def _init_logger() -> logging.Logger:
    logger = logging.getLogger("solver.attempt_log")
    if logger.handlers:
        return logger

    log_path = Path(__file__).resolve().parent / "logs" / "solver_attempts.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    except OSError:
        # No log file (read-only tree); progress still works.
        logger.handlers.clear()
    return logger


ATTEMPT_LOGGER = _init_logger()


def _emit_log(event: str, level: int = logging.INFO, **fields: Any) -> None:
    if not ATTEMPT_LOGGER.handlers:
        return
    extras = " ".join(f"{k}={v}" for k, v in fields.items() if v is not None and v != "")
    if extras:
        ATTEMPT_LOGGER.log(level, "%s | %s", event, extras)
    else:
        ATTEMPT_LOGGER.log(level, "%s", event)


def log_attempt_detail(event: str, **fields: Any) -> None:
    """Write one ``event | key=value ...`` line to the attempt log."""
    _emit_log(event, **fields)


def log_attempt_error(event: str, **fields: Any) -> None:
    _emit_log(event, logging.ERROR, **fields)


_DEFAULTS: Dict[str, Any] = {
    "status": "Idle",          # Idle | Solving | Solved | Error
    "phase": "",               # frontier | search
    "phase_total": "",         # frontier depth or job count
    "attempt": "",             # e.g. "job 3/12"
    "grid": "",                # e.g. "6 × 5 cells"
    "percent": 0.0,            # share of jobs finished
    "best_placed": 0,          # most chips placed in one leaf so far
    "best_fill_pct": 0.0,      # % of the free cells that leaf covers
    "leaves": 0,
    "elapsed_start": None,
    "elapsed": 0.0,
    "message": "",
    "done": False,
    "ok": None,
    "run_id": 0,               # bumped by every reset()
    "chip_count": 0,
}

PROGRESS: Dict[str, Any] = dict(_DEFAULTS)


def _persist_locked() -> None:
    global _LAST_STATE_MTIME
    try:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        with STATE_FILE_TMP.open("w", encoding="utf-8") as fh:
            json.dump(PROGRESS, fh, ensure_ascii=False, separators=(",", ":"))
        STATE_FILE_TMP.replace(STATE_FILE)
        _LAST_STATE_MTIME = STATE_FILE.stat().st_mtime
    except OSError as e:
        _emit_log("Progress not persisted", logging.WARNING, reason=e)


def _load_persisted_locked(force: bool = False) -> None:
    global _LAST_STATE_MTIME
    try:
        stat = STATE_FILE.stat()
    except OSError:
        return
    if not force and stat.st_mtime <= _LAST_STATE_MTIME:
        return
    try:
        with STATE_FILE.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError):
        return
    if isinstance(data, dict):
        PROGRESS.update({k: data[k] for k in PROGRESS if k in data})
    _LAST_STATE_MTIME = stat.st_mtime


def _now() -> float:
    return time.time()


def _fmt_elapsed(seconds: float) -> str:
    seconds = max(0.0, float(seconds))
    if seconds < 60:
        return f"{int(seconds)}s"
    m, s = divmod(int(seconds), 60)
    if m < 60:
        return f"{m}m {s}s"
    h, m = divmod(m, 60)
    return f"{h}h {m}m"


def _touch_elapsed_locked() -> None:
    t0 = PROGRESS.get("elapsed_start")
    if t0 is not None:
        PROGRESS["elapsed"] = _now() - float(t0)


def _as_int(v: Any) -> int:
    try:
        return max(0, int(v))
    except (TypeError, ValueError):
        return 0


def _as_pct(v: Any) -> float:
    try:
        f = float(v)
    except (TypeError, ValueError):
        f = 0.0
    return max(0.0, min(100.0, f))


def _set(key: str, value: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS[key] = value
        _persist_locked()


# ------------------------------
# Run lifecycle
# ------------------------------

def reset() -> None:
    with PROGRESS_LOCK:
        run_id = _as_int(PROGRESS.get("run_id")) + 1
        PROGRESS.update(_DEFAULTS)
        PROGRESS["run_id"] = run_id
        _emit_log("Progress reset", run_id=run_id)
        _persist_locked()


def start_timer() -> None:
    with PROGRESS_LOCK:
        PROGRESS["elapsed_start"] = _now()
        PROGRESS["elapsed"] = 0.0
        _persist_locked()


def set_done(ok: Any = None, *, reason: Any = None) -> None:
    """Mark the run complete.

    ``ok`` picks the final status (``Solved``/``Error``); when omitted the
    status defaults to ``Solved`` unless something already set it. ``reason``
    is surfaced through the ``message`` field.
    """
    ok_flag: Optional[bool] = None if ok is None else bool(ok)

    with PROGRESS_LOCK:
        _touch_elapsed_locked()
        if ok_flag is not None:
            PROGRESS["status"] = "Solved" if ok_flag else "Error"
        elif PROGRESS.get("status") in ("", "Idle", "Solving", None):
            PROGRESS["status"] = "Solved"
            ok_flag = True
        PROGRESS["percent"] = 100.0
        if reason is not None:
            PROGRESS["message"] = str(reason)
        PROGRESS["done"] = True
        if ok_flag is not None:
            PROGRESS["ok"] = ok_flag
        _emit_log(
            "Run finished",
            status=PROGRESS["status"],
            ok=PROGRESS["ok"],
            elapsed=f"{float(PROGRESS['elapsed']):.2f}s",
            leaves=PROGRESS["leaves"],
            best_placed=PROGRESS["best_placed"],
            message=PROGRESS["message"],
        )
        _persist_locked()


# ------------------------------
# Setters (tolerant of junk input)
# ------------------------------

def set_status(v: Any) -> None:
    _set("status", str(v))


def set_phase(v: Any) -> None:
    phase = "" if v is None else str(v)
    with PROGRESS_LOCK:
        if phase and phase != PROGRESS["phase"]:
            _emit_log("Phase started", phase=phase)
        PROGRESS["phase"] = phase
        _persist_locked()


def set_phase_total(v: Any) -> None:
    _set("phase_total", "" if v is None else str(v))


def set_attempt(v: Any) -> None:
    _set("attempt", "" if v is None else str(v))


def set_grid(v: Any) -> None:
    _set("grid", "" if v is None else str(v))


def set_progress_pct(pct: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["percent"] = _as_pct(pct)
        _touch_elapsed_locked()
        _persist_locked()


def set_best_placed(n: Any) -> None:
    _set("best_placed", _as_int(n))


def set_best_fill_pct(pct: Any) -> None:
    _set("best_fill_pct", _as_pct(pct))


def set_leaves(n: Any) -> None:
    _set("leaves", _as_int(n))


def set_chip_count(n: Any) -> None:
    _set("chip_count", _as_int(n))


def set_elapsed(seconds: Any) -> None:
    try:
        f = float(seconds)
    except (TypeError, ValueError):
        f = 0.0
    _set("elapsed", max(0.0, f))


def set_message(msg: Any) -> None:
    _set("message", "" if msg is None else str(msg))


# ------------------------------
# Snapshots for pollers
# ------------------------------

def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _load_persisted_locked()
        _touch_elapsed_locked()
        out = {k: v for k, v in PROGRESS.items() if k != "elapsed_start"}
        out["elapsed_str"] = _fmt_elapsed(PROGRESS["elapsed"])
        return out


def as_json() -> Dict[str, Any]:
    return snapshot()


with PROGRESS_LOCK:
    _load_persisted_locked(force=True)
