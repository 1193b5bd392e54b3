import threading
import time


class SharedState:
    """
    Singleton class to share state between the detection engine and the
    FastAPI status server.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance._reset()
        return cls._instance

    def _reset(self):
        self.data_lock = threading.Lock()
        self.status = "Loading model..."
        self.results = []
        self.results_ts = None
        self.model_info = {}
        self.engine_stats = {}
        self.start_time = time.time()

    def set_status(self, status):
        with self.data_lock:
            self.status = status

    def set_results(self, results):
        """Replace the latest results (records are immutable, the list is copied)."""
        with self.data_lock:
            self.results = list(results)
            self.results_ts = time.time()

    def set_model_info(self, info):
        with self.data_lock:
            self.model_info = dict(info)

    def update_engine_stats(self, stats):
        with self.data_lock:
            self.engine_stats.update(stats)

    def snapshot(self):
        """Consistent shallow copy of everything the API serves."""
        with self.data_lock:
            return {
                "status": self.status,
                "results": list(self.results),
                "results_ts": self.results_ts,
                "model_info": dict(self.model_info),
                "engine_stats": dict(self.engine_stats),
                "start_time": self.start_time,
            }


# Global instance
state = SharedState()
