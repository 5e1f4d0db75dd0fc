"""
Frame sources for the face distance pipeline.

A source is one of: a webcam index, a still photo, a directory of
photos, or a video file. InputHandler turns any of them into a stream
of BGR8 Frames and, through run()/start(), publishes that stream into a
FrameHandoff from a producer thread.

Bad sources fail at construction. Bad frames inside a good source are
logged and skipped; a webcam that keeps failing is given up on after
_MAX_FAILED_READS reads in a row.
"""

import logging
import threading
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

import cv2
import numpy as np

from face_distance.frame import Frame, PixelFormat, to_detector_format
from face_distance.handoff import FrameHandoff

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = frozenset({".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"})
VIDEO_SUFFIXES = frozenset({".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv"})

# Seconds each photo of a directory source stays current
_DIRECTORY_INTERVAL = 1.0

_MAX_FAILED_READS = 30

# Channel count of an IMREAD_UNCHANGED image -> its pixel format
_IMREAD_FORMATS = {1: PixelFormat.GRAY8, 3: PixelFormat.BGR8, 4: PixelFormat.BGRA8}


def load_image_frame(path: Union[str, Path]) -> Frame:
    """Read a still photo into a detector-ready frame.

    Alpha channels and 16-bit images are accepted and converted.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If OpenCV cannot decode it.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image not found: '{path}'.")

    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError(f"Unreadable image: '{path}'.")
    if image.dtype != np.uint8:
        image = cv2.convertScaleAbs(image, alpha=255.0 / max(float(image.max()), 1.0))

    channels = 1 if image.ndim == 2 else image.shape[2]
    return to_detector_format(Frame(image, _IMREAD_FORMATS[channels]))


def _classify(source: str) -> Tuple[str, List[str]]:
    """Return (mode, image_paths) for a source string.

    image_paths is empty for the capture modes.
    """
    if source.isdigit():
        return "webcam", []

    path = Path(source)
    if path.is_dir():
        images = sorted(str(p) for p in path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
        if not images:
            raise ValueError(f"Directory '{source}' contains no images ({sorted(IMAGE_SUFFIXES)}).")
        return "directory", images

    if not path.is_file():
        raise FileNotFoundError(
            f"Input source not found: '{source}'. "
            f"Expected a webcam index, an image, a directory, or a video."
        )

    suffix = path.suffix.lower()
    if suffix in IMAGE_SUFFIXES:
        return "image", [source]
    if suffix in VIDEO_SUFFIXES:
        return "video", []
    raise ValueError(
        f"Cannot use '{source}' as a source: '{suffix}' is neither an image "
        f"({sorted(IMAGE_SUFFIXES)}) nor a video ({sorted(VIDEO_SUFFIXES)})."
    )


class InputHandler:
    """Frame source over images, directories, videos and webcams.

    Usage:
        handler = InputHandler("0")
        for frame_id, frame in handler: ...

        # or, as the producer side of a handoff
        thread = handler.start(handoff, stop_event)
        ...
        stop_event.set(); thread.join(); handler.release()
    """

    def __init__(self, source: Union[str, int], resize_width: Optional[int] = None) -> None:
        """Validate the source and open it.

        Raises:
            FileNotFoundError: If a path source does not exist.
            ValueError: If a path is neither an image, a video nor an
                image directory.
            RuntimeError: If the video or webcam cannot be opened.
        """
        source = str(source).strip()
        self._resize_width = resize_width
        self._cap: Optional[cv2.VideoCapture] = None
        self._native_fps = 0.0
        self._mode, self._image_paths = _classify(source)

        if self._mode == "webcam":
            self._open_capture(int(source), f"webcam {source}")
        elif self._mode == "video":
            self._open_capture(source, f"video '{source}'")

        logger.info(
            "InputHandler ready: mode=%s, source=%s%s",
            self._mode,
            source,
            f" ({len(self._image_paths)} images)" if self._mode == "directory" else "",
        )

    @property
    def mode(self) -> str:
        """One of 'webcam', 'video', 'image' or 'directory'."""
        return self._mode

    @property
    def is_live(self) -> bool:
        """True for capture sources, which produce frames over time."""
        return self._mode in ("video", "webcam")

    def _open_capture(self, target: Union[str, int], label: str) -> None:
        cap = cv2.VideoCapture(target)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"Failed to open {label}.")
        self._cap = cap
        self._native_fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)

    def __iter__(self) -> Iterator[Tuple[int, Frame]]:
        """Yield (frame_id, frame) pairs; frames are BGR8."""
        frames = self._read_images() if self._image_paths else self._read_capture()
        for frame_id, frame in frames:
            yield frame_id, self._maybe_resize(frame)

    def _read_images(self) -> Iterator[Tuple[int, Frame]]:
        for frame_id, path in enumerate(self._image_paths):
            try:
                yield frame_id, load_image_frame(path)
            except (FileNotFoundError, ValueError) as e:
                logger.warning("Skipping image %d: %s", frame_id, e)

    def _read_capture(self) -> Iterator[Tuple[int, Frame]]:
        frame_id = 0
        failed_reads = 0

        while self._cap is not None:
            ok, image = self._cap.read()
            frame_id += 1

            if ok and image is not None:
                failed_reads = 0
                yield frame_id - 1, Frame(image)
                continue

            if self._mode == "video":
                logger.info("Video ended after %d frames.", frame_id - 1)
                return

            failed_reads += 1
            if failed_reads >= _MAX_FAILED_READS:
                logger.error("Webcam failed %d reads in a row, giving up.", failed_reads)
                return
            logger.warning("Webcam read %d failed, skipping.", frame_id - 1)

    def _maybe_resize(self, frame: Frame) -> Frame:
        """Downscale to resize_width, keeping the aspect ratio."""
        if self._resize_width is None or frame.width <= self._resize_width:
            return frame

        height = int(frame.height * self._resize_width / frame.width)
        resized = cv2.resize(frame.pixels, (self._resize_width, height), interpolation=cv2.INTER_AREA)
        return Frame(resized, frame.pixel_format, timestamp=frame.timestamp)

    def _publish_interval(self) -> float:
        if self._mode == "video" and self._native_fps > 0:
            return 1.0 / self._native_fps
        if self._mode == "directory":
            return _DIRECTORY_INTERVAL
        # Webcams are paced by the device
        return 0.0

    def run(self, handoff: FrameHandoff, stop_event: threading.Event) -> None:
        """Publish every frame into ``handoff`` until exhausted or stopped.

        Video files are paced at their native frame rate and directories
        at one photo per _DIRECTORY_INTERVAL.
        """
        interval = self._publish_interval()
        published = 0

        for _, frame in self:
            if stop_event.is_set():
                frame.release()
                break
            handoff.publish(frame)
            published += 1
            if interval and stop_event.wait(interval):
                break

        logger.info("Frame source stopped after publishing %d frames.", published)

    def start(self, handoff: FrameHandoff, stop_event: threading.Event) -> threading.Thread:
        """Run the source on a daemon producer thread."""
        thread = threading.Thread(
            target=self.run,
            args=(handoff, stop_event),
            name="frame-source",
            daemon=True,
        )
        thread.start()
        return thread

    def release(self) -> None:
        """Close the capture device or file, if any."""
        cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            logger.debug("VideoCapture released.")

    def __del__(self) -> None:
        # __init__ may have failed before _cap was set
        if getattr(self, "_cap", None) is not None:
            self.release()
