"""
Periodic task scheduler for background maintenance (the weekly vector cleanup tick).
"""

import time
import threading
from typing import Callable, Dict

from .config import CLEANUP_INTERVAL_SEC, is_heartbeat_enabled, validate_heartbeat_config
from ..util.logging import logger

CLEANUP_TASK = "vector_cleanup"

tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run}
running = False
shutdown_event = None


def register_task(name: str, interval_sec: int, func: Callable):
    """
    Register a task to be executed periodically.

    Args:
        name: Unique task identifier
        interval_sec: How often to run this task in seconds
        func: Function to call
    """
    if not callable(func):
        raise ValueError(f"Task function must be callable: {func}")

    if interval_sec < 1:
        raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

    issues = validate_heartbeat_config()
    if issues:
        raise ValueError(f"Heartbeat configuration invalid: {issues}")

    tasks[name] = {
        "func": func,
        "interval": interval_sec,
        "last_run": None
    }
    logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")


def register_cleanup_task(engine, interval_sec: int = None):
    """Register the all-users vector cleanup on the heartbeat."""
    register_task(CLEANUP_TASK, interval_sec or CLEANUP_INTERVAL_SEC, engine.cleanup_all_users_vectors)


def unregister_task(name: str):
    """Remove a task from the registry."""
    if name in tasks:
        del tasks[name]
        logger.info(f"Unregistered heartbeat task '{name}'")


def list_tasks():
    """Return list of registered task names."""
    return list(tasks.keys())


def start(poll_interval: float = 1.0):
    """
    Start the heartbeat loop.

    Blocks until stop() is called or the process is interrupted. Uses
    time.monotonic() for interval timing.
    """
    global running, shutdown_event

    if not is_heartbeat_enabled():
        logger.info("Heartbeat disabled (HEARTBEAT_ENABLED=false). Skipping start.")
        return

    if running:
        raise RuntimeError("Heartbeat already running")

    issues = validate_heartbeat_config()
    if issues:
        raise ValueError(f"Heartbeat configuration invalid: {issues}")

    running = True
    shutdown_event = threading.Event()

    logger.info(f"Starting heartbeat loop with tasks: {list(tasks.keys())}")

    try:
        while running and not shutdown_event.is_set():
            run_pending()
            shutdown_event.wait(poll_interval)

    except KeyboardInterrupt:
        logger.info("Heartbeat interrupted by user")
    finally:
        running = False
        logger.info("Heartbeat loop stopped")


def run_pending():
    """Run every task whose interval has elapsed. A failing task does not stop the others."""
    for name, task_info in list(tasks.items()):
        if should_run_task(name, task_info):
            try:
                run_task(name, task_info)
            except RuntimeError as e:
                logger.error(str(e))


def stop():
    """Stop the heartbeat loop gracefully."""
    global running

    if not running:
        logger.info("Heartbeat not running")
        return

    logger.info("Stopping heartbeat loop...")
    running = False

    if shutdown_event:
        shutdown_event.set()


def should_run_task(name: str, task_info: Dict) -> bool:
    """Check if a task should run this cycle."""
    if task_info["last_run"] is None:
        return True  # Run immediately if never run

    elapsed = time.monotonic() - task_info["last_run"]
    return elapsed >= task_info["interval"]


def run_task(name: str, task_info: Dict):
    """Execute a task and record timing."""
    start_time = time.monotonic()

    try:
        result = task_info["func"]()
    except Exception as e:
        end_time = time.monotonic()
        # A failed run is not retried until the next interval
        task_info["last_run"] = end_time
        logger.log_heartbeat_task(name, start_time, end_time, status="failed", details={"error": str(e)})
        raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}") from e

    end_time = time.monotonic()
    task_info["last_run"] = end_time
    details = result if isinstance(result, dict) else None
    logger.log_heartbeat_task(name, start_time, end_time, details=details)


def reset_task(name: str):
    """Reset a task's last_run time to force immediate execution."""
    if name in tasks:
        tasks[name]["last_run"] = None
        logger.info(f"Reset heartbeat task '{name}' (will run immediately)")


def get_status():
    """Return current heartbeat status for monitoring."""
    if not is_heartbeat_enabled():
        return {"status": "disabled", "reason": "HEARTBEAT_ENABLED=false"}

    return {
        "status": "running" if running else "stopped",
        "tasks": {
            name: {
                "interval_sec": info["interval"],
                "last_run": info["last_run"],
                "next_run": info["last_run"] + info["interval"] if info["last_run"] else None
            }
            for name, info in tasks.items()
        },
    }
