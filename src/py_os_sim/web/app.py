"""Flask application factory for the PyOS-Sim JSON API.

The ``create_app`` function returns a Flask app with three endpoints:

- ``GET /api/algorithms`` — the selectable algorithms with descriptions.
- ``POST /api/schedule`` — run a scheduling workload to completion and
  return the timeline, final processes, and statistics.
- ``POST /api/memory`` — replay a list of allocate/deallocate operations
  on a fresh address space and return the resulting state and metrics.

Every request builds fresh engines, so concurrent clients never share
simulation state.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, Response, jsonify, request

from py_os_sim.memory import (
    AllocationEngine,
    MemoryRequest,
    PlacementAlgorithm,
    available_placements,
    create_allocator,
)
from py_os_sim.process import (
    DEFAULT_QUANTUM,
    Process,
    SchedulingAlgorithm,
    SimulationTimeoutError,
    available_algorithms,
    create_scheduler,
)

_HTTP_BAD_REQUEST = 400
_MAX_STEPS = 100_000


def _require(data: dict[str, Any], key: str) -> Any:
    """Return ``data[key]`` or raise ValueError naming the missing field."""
    if key not in data:
        msg = f"Missing '{key}' field"
        raise ValueError(msg)
    return data[key]


def _parse_processes(items: Any) -> list[Process]:
    """Build processes from ``[{id, name, arrivalTime, burstTime, priority}]``."""
    if not isinstance(items, list):
        msg = "'processes' must be a list"
        raise ValueError(msg)
    processes: list[Process] = []
    for item in items:
        if not isinstance(item, dict):
            msg = "Each process must be an object"
            raise ValueError(msg)
        pid = str(_require(item, "id"))
        processes.append(
            Process(
                pid=pid,
                name=str(item.get("name", pid)),
                arrival_time=_require(item, "arrivalTime"),
                burst_time=_require(item, "burstTime"),
                priority=item.get("priority", 0),
            )
        )
    return processes


def _apply_operation(engine: AllocationEngine, operation: Any) -> bool:
    """Run one ``allocate`` or ``deallocate`` operation on *engine*."""
    if not isinstance(operation, dict):
        msg = "Each operation must be an object"
        raise ValueError(msg)
    op = _require(operation, "op")
    process_id = str(_require(operation, "processId"))
    if op == "allocate":
        size = _require(operation, "size")
        if "id" in operation:
            memory_request = MemoryRequest(
                request_id=str(operation["id"]), process_id=process_id, size=size
            )
        else:
            memory_request = engine.new_request(process_id, size)
        return engine.allocate(memory_request)
    if op == "deallocate":
        return engine.deallocate(process_id)
    msg = f"Unknown operation {op!r}"
    raise ValueError(msg)


def create_app() -> Flask:
    """Create and configure the Flask application.

    Returns:
        A configured Flask application ready to serve.

    """
    app = Flask(__name__)

    @app.errorhandler(ValueError)
    def bad_request(error: ValueError) -> tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        """Turn invalid input into a 400 JSON error."""
        return jsonify({"error": str(error)}), _HTTP_BAD_REQUEST

    @app.route("/api/algorithms")
    def algorithms() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the selectable scheduling and placement algorithms."""
        scheduling = [
            {"id": str(tag), "name": policy.name, "description": policy.description}
            for tag, policy in zip(SchedulingAlgorithm, available_algorithms(), strict=True)
        ]
        placement = [
            {"id": str(tag), "name": policy.name, "description": policy.description}
            for tag, policy in zip(PlacementAlgorithm, available_placements(), strict=True)
        ]
        return jsonify({"scheduling": scheduling, "placement": placement})

    @app.route("/api/schedule", methods=["POST"])
    def schedule() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Run a scheduling simulation.

        Expects JSON body: ``{"algorithm": "...", "quantum": 2, "processes": [...]}``

        Returns:
            JSON with ``timeline``, ``processes``, and ``stats`` fields.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            msg = "Expected a JSON object body"
            raise ValueError(msg)
        engine = create_scheduler(
            _require(data, "algorithm"), quantum=data.get("quantum", DEFAULT_QUANTUM)
        )
        engine.initialize(_parse_processes(_require(data, "processes")))
        try:
            result = engine.run_full_simulation(max_steps=_MAX_STEPS)
        except SimulationTimeoutError as e:
            raise ValueError(str(e)) from e
        return jsonify(result.to_dict())

    @app.route("/api/memory", methods=["POST"])
    def memory() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Replay allocation operations on a fresh address space.

        Expects JSON body:
        ``{"algorithm": "...", "totalSize": 100, "operations": [...]}``

        Returns:
            JSON with ``results``, ``blocks``, ``requests``, ``history``,
            and ``metrics`` fields.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            msg = "Expected a JSON object body"
            raise ValueError(msg)
        engine = create_allocator(
            _require(data, "algorithm"), total_size=_require(data, "totalSize")
        )
        operations = data.get("operations", [])
        if not isinstance(operations, list):
            msg = "'operations' must be a list"
            raise ValueError(msg)
        results = [_apply_operation(engine, operation) for operation in operations]
        payload = engine.get_memory_state().to_dict()
        payload["results"] = results
        payload["metrics"] = engine.metrics().to_dict()
        return jsonify(payload)

    return app


def main() -> None:
    """Run the API development server.

    This is the ``py-os-sim-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
