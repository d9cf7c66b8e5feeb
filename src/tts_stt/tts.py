import logging
import queue
import subprocess
import sys
import threading
from typing import Callable, Optional

from navigation.guidance.models import ManeuverAnnounced
from navigation.guidance.sinks import PresentationSink

logger = logging.getLogger(__name__)


def pyttsx3_speak(text: str, rate: int = 150) -> None:
    # pyttsx3 runs in a child process so a stuck audio driver cannot hang guidance.
    script = (
        "import pyttsx3\n"
        "engine = pyttsx3.init()\n"
        f"engine.setProperty('rate', {int(rate)})\n"
        f"engine.say({repr(text)})\n"
        "engine.runAndWait()"
    )
    subprocess.run([sys.executable, "-c", script], check=False)


class SpeechSink(PresentationSink):
    """
    Speaks ManeuverAnnounced events on a background worker thread.

    Args:
        speak: Callable that says one line of text; pyttsx3 in a subprocess by default.
    """

    def __init__(self, speak: Optional[Callable[[str], None]] = None) -> None:
        self._speak = speak or pyttsx3_speak
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._thread = threading.Thread(target=self._worker, name="tts", daemon=True)
        self._thread.start()

    def on_event(self, event) -> None:
        if isinstance(event, ManeuverAnnounced):
            self.say(event.text)

    def say(self, text: str) -> None:
        text = (text or "").strip()
        if text:
            self._queue.put(text)

    def close(self, timeout: float = 5.0) -> None:
        self._queue.join()       # wait for queued speech to finish
        self._queue.put(None)    # stop signal for the worker
        self._thread.join(timeout=timeout)

    def _worker(self) -> None:
        while True:
            text = self._queue.get()
            if text is None:
                self._queue.task_done()
                break
            try:
                self._speak(text)
            except Exception:
                logger.exception("TTS failed")
            finally:
                self._queue.task_done()
