"""
Face Distance CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire the
    frame source, handoff, detection gate and pipeline together, and run
    the render loop.

Usage:
    python main.py --source 0                      # Webcam
    python main.py --source photo.jpg              # Still photo
    python main.py --source video.mp4 --viewport 800x600
    python main.py --config my_config.yaml --focal-length 640

Keys:
    d      : Toggle face detection
    q/ESC  : Quit

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import logging
import sys
import threading
import time

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from face_distance.config import apply_overrides, load_config
from face_distance.detector import Detector
from face_distance.distance import FocalLengthDistanceEstimator
from face_distance.gate import DetectionGate
from face_distance.geometry import Size
from face_distance.handoff import FrameHandoff
from face_distance.input_handler import InputHandler
from face_distance.pipeline import DetectionSwitch, FaceDistancePipeline, QueueRenderSink
from face_distance.visualizer import close_windows, render, show_canvas

_QUIT_KEYS = {ord("q"), 27}
_TOGGLE_KEY = ord("d")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Face Distance: detect faces and estimate their distance to the camera",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: '0' for webcam, path to image/video file, or directory.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--confidence",
        type=float,
        help="Detection confidence threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--viewport",
        type=str,
        help="Viewport size as WIDTHxHEIGHT, e.g. 1280x720. Overrides config.",
    )
    parser.add_argument(
        "--focal-length",
        type=float,
        help="Camera focal length in frame pixels. Overrides config.",
    )
    parser.add_argument(
        "--face-width",
        type=float,
        help="Reference real-world face width (cm). Overrides config.",
    )
    parser.add_argument(
        "--no-detection",
        action="store_true",
        help="Start with face detection switched off (press 'd' to enable).",
    )
    parser.add_argument(
        "--show-box-size",
        action="store_true",
        help="Render original and scaled box sizes above each face.",
    )

    return parser.parse_args()


def main() -> int:
    """Main execution loop."""
    args = parse_args()

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_overrides(load_config(args.config), {
            "input": {"source": args.source},
            "detection": {
                "confidence_threshold": args.confidence,
                "enabled": False if args.no_detection else None,
            },
            "model": {"backend": args.backend},
            "display": {
                "viewport_size": args.viewport,
                "show_box_size": True if args.show_box_size else None,
            },
            "distance": {
                "focal_length": args.focal_length,
                "reference_face_width": args.face_width,
            },
        })
        logger.info("Configuration active for this run.")

    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Initialize Components
    try:
        detector = Detector(config)
        estimator = FocalLengthDistanceEstimator(config.distance)
        input_handler = InputHandler(
            source=config.input.source,
            resize_width=config.input.resize_width,
        )
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error("Initialization failed: %s", e)
        return 1
    except Exception as e:
        logger.exception("Unexpected initialization error: %s", e)
        return 1

    handoff = FrameHandoff()
    sink = QueueRenderSink()
    gate = DetectionGate(detector.detect)
    pipeline = FaceDistancePipeline(
        gate=gate,
        estimator=estimator,
        detector_input_size=detector.input_size,
        viewport_size=Size(*config.display.viewport_size),
        sink=sink,
        switch=DetectionSwitch(config.detection.enabled),
    )

    stop_event = threading.Event()
    producer = input_handler.start(handoff, stop_event)

    # 3. Render Loop
    logger.info("Starting render loop. Press 'd' to toggle detection, 'q' or ESC to quit.")

    annotations = ()
    frame_count = 0
    start_time = time.perf_counter()

    try:
        while True:
            if pipeline.consume(handoff) is not None:
                frame_count += 1

            batch = sink.poll()
            if batch is not None:
                annotations = batch

            frame = pipeline.current_frame
            canvas = render(
                frame.pixels if frame is not None else None,
                annotations,
                pipeline.viewport_size,
                config.display,
                config.distance,
                config.visualization,
                detection_enabled=pipeline.detection_enabled,
            )

            key = show_canvas(config.display.window_name, canvas)
            if key in _QUIT_KEYS:
                logger.info("Quit signal received (key press).")
                break
            if key == _TOGGLE_KEY:
                pipeline.toggle_detection()

            # Live sources end when the stream does; stills stay on screen
            if input_handler.is_live and not producer.is_alive() and not handoff.pending:
                logger.info("Input stream ended.")
                break

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except Exception as e:
        logger.exception("Runtime error during processing: %s", e)
        return 1
    finally:
        # 4. Cleanup
        stop_event.set()
        producer.join(timeout=2.0)
        gate.close(wait=False)
        input_handler.release()

        close_windows()

        elapsed = time.perf_counter() - start_time
        fps = frame_count / elapsed if elapsed > 0 else 0.0
        logger.info(
            "Processing finished. Frames shown: %d (dropped %d). Avg FPS: %.2f.",
            frame_count, handoff.dropped, fps,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
