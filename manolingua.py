"""ManoLingua CLI — live sign-language alphabet translation from a camera.

Usage:
    python manolingua.py run --camera user
    python manolingua.py run --camera environment --mode image --max-hands 2
    python manolingua.py run --url https://example.com/predict --headless
    python manolingua.py devices
    python manolingua.py info
"""

from __future__ import annotations

import argparse
import sys
import threading
import time

from loguru import logger


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="manolingua",
        description="ManoLingua — real-time sign-language letter translation",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- run ----
    run_parser = subparsers.add_parser("run", help="Translate signs from a live camera")
    run_parser.add_argument("--camera", type=str, default=None, help="user | environment | <index>")
    run_parser.add_argument("--mode", type=str, choices=["landmarks", "image"], default=None, help="Payload mode")
    run_parser.add_argument("--max-hands", type=int, choices=[1, 2], default=None, help="Hands to track")
    run_parser.add_argument("--url", type=str, default=None, help="Classifier predict URL")
    run_parser.add_argument("--cooldown-ms", type=int, default=None, help="Minimum time between requests")
    run_parser.add_argument("--headless", action="store_true", help="No preview window; log predictions only")

    # ---- devices ----
    devices_parser = subparsers.add_parser("devices", help="List camera indices that can be opened")
    devices_parser.add_argument("--max-index", type=int, default=5, help="Highest index to probe")

    # ---- info ----
    subparsers.add_parser("info", help="Show system information and effective settings")

    args = parser.parse_args(argv)

    if args.command == "run":
        cmd_run(args)
    elif args.command == "devices":
        cmd_devices(args)
    elif args.command == "info":
        cmd_info()


def _settings_from_args(args: argparse.Namespace):
    from app.config import Settings

    overrides = {
        "camera": args.camera,
        "payload_mode": args.mode,
        "max_hands": args.max_hands,
        "predict_url": args.url,
        "cooldown_ms": args.cooldown_ms,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def _toggle_facing(selector: str) -> str:
    if selector == "user":
        return "environment"
    if selector == "environment":
        return "user"
    return selector


def cmd_run(args: argparse.Namespace) -> None:
    """Run the live pipeline with an optional OpenCV preview window."""
    from app.factory import build_controller
    from app.logging_config import setup_logging
    from core.errors import ManoLinguaError
    from core.types import ExtractionResult

    settings = _settings_from_args(args)
    setup_logging(settings)

    latest: dict[str, ExtractionResult] = {}
    latest_lock = threading.Lock()

    def keep_latest(result: ExtractionResult) -> None:
        with latest_lock:
            latest["result"] = result

    controller = build_controller(settings, on_result=keep_latest)
    selector = settings.camera

    try:
        controller.start(selector)
    except ManoLinguaError as e:
        logger.error(str(e))
        controller.close()
        sys.exit(1)

    logger.info(f"Sending {settings.payload_mode.value} to {settings.predict_url}")

    try:
        if args.headless:
            logger.info("Press Ctrl+C to quit")
            while True:
                time.sleep(1.0)
        else:
            _preview_loop(controller, latest, latest_lock, selector, settings)
    except KeyboardInterrupt:
        pass
    finally:
        logger.info(f"Pipeline stats: {controller.stats}")
        controller.close()


def _preview_loop(controller, latest, latest_lock, selector, settings) -> None:
    import cv2

    from app.factory import mirror_preview
    from core.errors import ManoLinguaError
    from core.vision.overlay import compose_preview

    window = "ManoLingua"
    size = (settings.camera_width, settings.camera_height)
    # A window must exist before waitKey blocks; show a placeholder until the first frame.
    cv2.imshow(window, compose_preview(None, controller.prediction, size=size))

    logger.info("Press 'q' to quit, 'c' to flip camera")
    while True:
        with latest_lock:
            result = latest.pop("result", None)

        if result is not None:
            mirror = mirror_preview(settings, selector)
            cv2.imshow(window, compose_preview(result, controller.prediction, mirror=mirror))
        else:
            time.sleep(0.005)

        key = cv2.waitKey(15) & 0xFF
        if key == ord("q"):
            break
        if key == ord("c"):
            new_selector = _toggle_facing(selector)
            try:
                controller.switch_device(new_selector)
                selector = new_selector
            except ManoLinguaError as e:
                logger.error(f"Camera switch failed: {e}")
                break

    cv2.destroyAllWindows()


def cmd_devices(args: argparse.Namespace) -> None:
    """Probe camera indices 0..max-index."""
    import cv2

    found = []
    for index in range(args.max_index + 1):
        cap = cv2.VideoCapture(index)
        if cap.isOpened():
            ok, frame = cap.read()
            shape = f"{frame.shape[1]}x{frame.shape[0]}" if ok and frame is not None else "no frame"
            found.append(index)
            print(f"  camera {index}: {shape}")
        cap.release()

    if not found:
        print("No cameras found.")
        sys.exit(1)


def cmd_info() -> None:
    """Show system information."""
    import platform

    from app.config import settings

    try:
        import cv2
        cv_ver = cv2.__version__
    except ImportError:
        cv_ver = "not installed"

    try:
        import mediapipe as mp
        mp_ver = mp.__version__
    except ImportError:
        mp_ver = "not installed"

    print(f"""
🤟 {settings.app_name} v{settings.app_version}
══════════════════════════════════════════════
  Python:       {platform.python_version()}
  Platform:     {platform.system()} {platform.machine()}
  OpenCV:       {cv_ver}
  MediaPipe:    {mp_ver}
  Predict URL:  {settings.predict_url}
  Mode:         {settings.payload_mode.value}
  Max hands:    {settings.max_hands}
  Cooldown:     {settings.cooldown_ms} ms
  Camera:       {settings.camera} ({settings.camera_width}x{settings.camera_height}@{settings.camera_fps})
""")


if __name__ == "__main__":
    main()
