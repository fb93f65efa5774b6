import fcntl
import json
import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from infra.errors import NotFound, ValidationError

# One lock per document file, shared by every collection instance in the process.
_LOCKS: Dict[str, "DocumentLock"] = {}
_LOCKS_GUARD = threading.Lock()

_MISSING = object()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_path(doc: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted path like 'ocr.data' from a nested dict."""
    current = doc
    for part in path.split('.'):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def set_path(doc: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split('.')
    current = doc
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def unset_path(doc: Dict[str, Any], path: str) -> None:
    parts = path.split('.')
    current = doc
    for part in parts[:-1]:
        current = current.get(part)
        if not isinstance(current, dict):
            return
    current.pop(parts[-1], None)


def _matches(doc: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    for path, expected in filter.items():
        value = get_path(doc, path, _MISSING)
        if isinstance(expected, (list, tuple, set)):
            if value is _MISSING or value not in expected:
                return False
        elif value is _MISSING or value != expected:
            return False
    return True


def _sort_key(doc: Dict[str, Any], field: str):
    value = get_path(doc, field)
    # Missing values sort last in ascending order
    return (value is None, 0 if value is None else value)


SortSpec = Union[str, List[Tuple[str, int]]]


class DocumentLock:
    """Re-entrant lock on one document, held across threads and processes.

    Threads in this process serialize on an RLock. The outermost holder also
    takes an exclusive flock on a sidecar file, which is what keeps a cron
    sweep and a running server from interleaving on the same document.
    """

    def __init__(self, lock_path: Path):
        self.lock_path = lock_path
        self._thread_lock = threading.RLock()
        self._depth = 0
        self._fd: Optional[int] = None

    def acquire(self) -> None:
        self._thread_lock.acquire()
        if self._depth == 0:
            try:
                self.lock_path.parent.mkdir(parents=True, exist_ok=True)
                fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX)
                except OSError:
                    os.close(fd)
                    raise
            except OSError:
                self._thread_lock.release()
                raise
            self._fd = fd
        self._depth += 1

    def release(self) -> None:
        self._depth -= 1
        if self._depth == 0:
            fd, self._fd = self._fd, None
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
        self._thread_lock.release()

    @contextmanager
    def held(self):
        self.acquire()
        try:
            yield
        finally:
            self.release()


class DocumentCollection:
    """A directory of JSON documents, one file per document.

    Writes go through a temp file and an atomic replace under a per-document
    lock, so readers always see a complete document and concurrent writers
    to the same key are serialized.
    """
    def __init__(self, root: Path, name: str, key_field: str = 'id', label: Optional[str] = None):
        self.name = name
        self.label = label or name
        self.key_field = key_field
        self.collection_dir = Path(root) / name

    def _path(self, key: str) -> Path:
        if not key or not isinstance(key, str):
            raise ValidationError(f"Invalid {self.name} key: {key!r}")
        safe = key.replace('/', '__').replace('\\', '__')
        return self.collection_dir / f"{safe}.json"

    def document_lock(self, key: str) -> DocumentLock:
        path = self._path(key)
        lock_key = str(path)
        with _LOCKS_GUARD:
            lock = _LOCKS.get(lock_key)
            if lock is None:
                lock = _LOCKS[lock_key] = DocumentLock(path.parent / '.locks' / f"{path.stem}.lock")
        return lock

    @contextmanager
    def lock(self, key: str):
        with self.document_lock(key).held():
            yield

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return None

    def _write(self, key: str, doc: Dict[str, Any]) -> None:
        output_file = self._path(key)
        temp_file = output_file.with_suffix('.tmp')
        output_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(doc, f, indent=2, default=str)
            temp_file.replace(output_file)
        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self._read(self._path(key))

    def require(self, key: str) -> Dict[str, Any]:
        doc = self.get(key)
        if doc is None:
            raise NotFound(f"{self.label} '{key}' not found")
        return doc

    def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        key = doc.get(self.key_field)
        with self.lock(key):
            if self.exists(key):
                raise ValidationError(f"{self.name} document '{key}' already exists")
            self._write(key, doc)
        return doc

    def save(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or fully replace a document."""
        key = doc.get(self.key_field)
        with self.lock(key):
            self._write(key, doc)
        return doc

    def update_one(
        self,
        key: str,
        set_fields: Dict[str, Any],
        unset_fields: Iterable[str] = ()
    ) -> Dict[str, Any]:
        """Apply dotted-path sets to one document and return the new version."""
        with self.lock(key):
            doc = self.require(key)
            for path, value in set_fields.items():
                set_path(doc, path, value)
            for path in unset_fields:
                unset_path(doc, path)
            self._write(key, doc)
            return doc

    def update_if(
        self,
        key: str,
        predicate: Callable[[Dict[str, Any]], bool],
        set_fields: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Conditional update: returns None and writes nothing when predicate fails."""
        with self.lock(key):
            doc = self.require(key)
            if not predicate(doc):
                return None
            for path, value in set_fields.items():
                set_path(doc, path, value)
            self._write(key, doc)
            return doc

    def modify(self, key: str, fn: Callable[[Dict[str, Any]], Any]) -> Dict[str, Any]:
        """Read-modify-write under the document lock. fn mutates the dict in place."""
        with self.lock(key):
            doc = self.require(key)
            fn(doc)
            self._write(key, doc)
            return doc

    def delete(self, key: str) -> bool:
        with self.lock(key):
            path = self._path(key)
            if not path.exists():
                return False
            path.unlink()
            return True

    def all(self) -> List[Dict[str, Any]]:
        if not self.collection_dir.exists():
            return []
        docs = []
        for path in sorted(self.collection_dir.glob('*.json')):
            doc = self._read(path)
            if doc is not None:
                docs.append(doc)
        return docs

    def find(
        self,
        filter: Optional[Dict[str, Any]] = None,
        where: Optional[Callable[[Dict[str, Any]], bool]] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Query documents.

        filter matches dotted paths by equality (a list/tuple/set value means
        "one of"); where is an arbitrary predicate; sort is a field name or a
        list of (field, direction) pairs with direction 1 or -1.
        """
        docs = [
            doc for doc in self.all()
            if (not filter or _matches(doc, filter)) and (where is None or where(doc))
        ]

        if sort:
            spec = [(sort, 1)] if isinstance(sort, str) else list(sort)
            for field, direction in reversed(spec):
                docs.sort(key=lambda d: _sort_key(d, field), reverse=direction < 0)

        if limit is not None:
            docs = docs[:limit]
        return docs

    def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return len(self.find(filter))
