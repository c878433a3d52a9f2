import json
import queue
import threading
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

from fintrack.config import SAVES_DIR
from fintrack.errors import InvalidInput
from fintrack.events import Event, EventBus, STATE_CHANGED

RECORD_VERSION = "1.0"


class JsonFileStore:
    """One JSON file per signed-in identity."""

    def __init__(self, saves_dir=SAVES_DIR):
        self.saves_dir = Path(saves_dir)
        self.saves_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, identity: str) -> Path:
        if not identity or "/" in identity or "\\" in identity or identity.startswith("."):
            raise InvalidInput(f"Invalid identity: {identity!r}")
        return self.saves_dir / f"{identity}.json"

    def list_identities(self) -> List[str]:
        return sorted(f.stem for f in self.saves_dir.glob("*.json"))

    def save_snapshot(self, identity: str, record: dict) -> bool:
        data = {
            "metadata": {
                "version": RECORD_VERSION,
                "saved": date.today().isoformat(),
                "transaction_counter": len(record.get("transactions", []))
            },
            **record,
        }
        path = self._path(identity)
        try:
            json_str = json.dumps(data, indent=2)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(json_str)
            tmp_path.replace(path)
            print(f"✓ Saved {len(record.get('transactions', []))} transactions for '{identity}'")
            return True
        except (OSError, TypeError, ValueError) as e:
            print(f"Error saving data: {e}")
            return False

    def load_snapshot(self, identity: str) -> Optional[dict]:
        path = self._path(identity)
        if not path.exists():
            print(f"No saved data for '{identity}'")
            return None
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            print(f"Error loading data: {e}")
            return None
        if not isinstance(data, dict):
            print(f"Error loading data: '{identity}' does not hold a record")
            return None
        data.pop("metadata", None)
        print(f"✓ Loaded {len(data.get('transactions', []))} transactions, "
              f"{len(data.get('categories', []))} categories")
        return data


class PersistenceWriter:
    """Writes ``STATE_CHANGED`` snapshots to a store in the order they were published.

    Writes happen on a single background thread so callers never wait on disk.
    """

    def __init__(self, store, bus: EventBus):
        self.store = store
        self.bus = bus
        self.failures: List[Tuple[str, dict]] = []
        self._queue = queue.Queue()
        self._worker = threading.Thread(target=self._run, name="fintrack-writer", daemon=True)
        self._worker.start()
        bus.subscribe(STATE_CHANGED, self.on_state_changed)

    def on_state_changed(self, event: Event) -> None:
        self._queue.put((event.payload["identity"], event.payload["record"]))

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                identity, record = item
                try:
                    ok = self.store.save_snapshot(identity, record)
                except Exception as e:
                    print(f"Error saving data: {e}")
                    ok = False
                if not ok:
                    self.failures.append((identity, record))
            finally:
                self._queue.task_done()

    def flush(self) -> None:
        """Block until every queued write has been attempted."""
        self._queue.join()

    def close(self) -> None:
        self.bus.unsubscribe(STATE_CHANGED, self.on_state_changed)
        self._queue.put(None)
        self._worker.join()
