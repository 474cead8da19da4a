import queue
import threading

from .main_script import handle_message

_STOP = object()


class AtlasWorker:
    """
    Serve processAtlas/createZip requests on a background thread.

    Requests are handled one at a time in arrival order and every reply is
    passed to on_message. A failing request only produces an error reply
    for its own requestId.
    """

    def __init__(self, on_message, handler=handle_message):
        self.on_message = on_message
        self.handler = handler
        self._queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="atlas-worker", daemon=True)
        self._thread.start()

    def post_message(self, message):
        with self._lock:
            if self._closed:
                raise RuntimeError("AtlasWorker is closed")
            self._queue.put(message)

    def _run(self):
        while True:
            message = self._queue.get()
            try:
                if message is _STOP:
                    break
                reply = self.handler(message)
                self.on_message(reply)
            except Exception as e:
                # The handler already converts request failures; this covers
                # a misbehaving handler or on_message callback.
                print(f"[AtlasWorker] Failed to deliver reply: {e}")
            finally:
                self._queue.task_done()

    def close(self, timeout=None):
        """Stop accepting requests, finish the queued ones and join the thread."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        self._thread.join(timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
