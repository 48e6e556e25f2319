"""
FORTUNEWHEEL — Wheel JSON API
The server decides every outcome; clients animate the rotation it returns.
"""
import json, logging, threading

# ── Structured logging ──
from config.settings import WheelConfig

logging.basicConfig(
    level=WheelConfig.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("fortunewheel")

from flask import Flask, request

from api import wheel_routes
from flows.wheel_controller import WheelController
from sim_engine.wheel import InvalidWeight
from tools.wheel_store import WheelStore

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = 64 * 1024

# One controller per process; the lock keeps state transitions strictly sequential
_lock = threading.Lock()
_controller = None
_store = None


def get_controller(allow_reset: bool = False) -> WheelController:
    """The process controller, built from the store on first use.

    A stored wheel with invalid weights is reported on every request until
    the caller asks for a reset, which discards the bad blob.
    """
    global _controller
    if _controller is None:
        store = _store or WheelStore()
        try:
            _controller = WheelController(store=store)
        except InvalidWeight:
            if not allow_reset:
                raise
            logger.warning(f"Discarding stored wheel with invalid weights at {store.path}")
            store.clear()
            _controller = WheelController(store=store)
        logger.info(f"Wheel loaded: {len(_controller.items)} items from {store.path}")
    return _controller


def set_controller(controller: WheelController):
    """Swap the process controller (tests, embedding hosts)."""
    global _controller
    with _lock:
        _controller = controller


def set_store(store: WheelStore = None):
    """Point the process at another store; the controller is rebuilt lazily."""
    global _controller, _store
    with _lock:
        _store = store
        _controller = None


def _json(payload, status: int = 200):
    return json.dumps(payload, default=str), status, {"Content-Type": "application/json"}


def _call(fn, *args, with_body: bool = False):
    """Run a wheel_routes function under the lock, mapping wheel errors to JSON."""
    try:
        with _lock:
            controller = get_controller(allow_reset=fn is wheel_routes.reset_items)
            if with_body:
                data = request.get_json(silent=True) or {}
                if not isinstance(data, dict):
                    return _json({"error": "JSON body must be an object"}, 400)
                return _json(fn(controller, *args, data))
            return _json(fn(controller, *args))
    except Exception as e:
        status = wheel_routes.error_status(e)
        if status == 500:
            logger.exception(f"Unhandled error in {fn.__name__}")
            return _json({"error": "internal error"}, 500)
        logger.info(f"{fn.__name__} rejected: {type(e).__name__}: {e}")
        return _json({"error": str(e), "kind": type(e).__name__}, status)


@app.route("/api/wheel")
def api_wheel():
    """API: Items, segments, spin state and settings."""
    return _call(wheel_routes.wheel_state)


@app.route("/api/wheel/items", methods=["POST"])
def api_add_item():
    """API: Add an item. Body: {name, weight?, color?}"""
    return _call(wheel_routes.add_item, with_body=True)


@app.route("/api/wheel/items/<int:index>", methods=["PUT"])
def api_update_item(index):
    """API: Edit an item. Body: any of {name, weight, color}"""
    return _call(wheel_routes.update_item, index, with_body=True)


@app.route("/api/wheel/items/<int:index>", methods=["DELETE"])
def api_delete_item(index):
    return _call(wheel_routes.delete_item, index)


@app.route("/api/wheel/reset", methods=["POST"])
def api_reset():
    return _call(wheel_routes.reset_items)


@app.route("/api/wheel/settings", methods=["PUT"])
def api_settings():
    """API: Body: {stop_animation_time: ms}"""
    return _call(wheel_routes.update_settings, with_body=True)


@app.route("/api/wheel/spin", methods=["POST"])
def api_spin():
    """API: Start a spin.

    Returns the selected segment plus start/target rotation and duration;
    rotation(t) = start + (target - start) * (1 - (1 - t/duration)^3).
    """
    return _call(wheel_routes.start_spin, with_body=True)


@app.route("/api/wheel/tick", methods=["POST"])
def api_tick():
    return _call(wheel_routes.tick, with_body=True)


@app.route("/api/wheel/stop", methods=["POST"])
def api_stop():
    return _call(wheel_routes.stop_spin, with_body=True)


@app.route("/api/wheel/abort", methods=["POST"])
def api_abort():
    return _call(wheel_routes.abort_spin)


@app.route("/api/wheel/pointer")
def api_pointer():
    return _call(wheel_routes.pointer)


@app.route("/api/wheel/boundary", methods=["POST"])
def api_boundary():
    """API: Drag one boundary. Body: {index, kind: start|end, angle}"""
    return _call(wheel_routes.drag_boundary, with_body=True)


@app.route("/health")
def health():
    return _json({"status": "ok", "config": WheelConfig.summary()})


if __name__ == "__main__":
    import os
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
