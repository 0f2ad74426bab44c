import os
import time
import hashlib
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple

from core.assembler import Candidate, PayloadAssembler
from core.component_refs import resolve_component_refs
from core.content_evaluators import ParseCache, describe, evaluate
from core.dependency_detector import DependencyDetector
from core.detector_registry import DetectorRegistry
from core.errors import ScanCancelledError
from core.exclusion import ExclusionPredicate
from core.file_provider import FileEntry, FileProvider
from core.language_detector import detect_language
from core.matcher_index import MatcherIndex
from core.promotion import Promoter
from core.settings import ScanConfig, Settings
from models.payload import Payload

# Import all detectors to trigger @DetectorRegistry.register decorators.
# The import order is the registration order, which decides merge tie-breaks.
import detectors.nodejs
import detectors.python
import detectors.java
import detectors.golang
import detectors.rust
import detectors.php
import detectors.ruby
import detectors.dotnet
import detectors.deno
import detectors.cocoapods
import detectors.cplusplus
import detectors.delphi
import detectors.docker
import detectors.terraform
import detectors.github_actions
import detectors.dotenv

logger = logging.getLogger(__name__)

ROOT_NAME = "main"
ID_LENGTH = 20

DETECTOR_ORDER = (
    "nodejs", "python", "java", "golang", "rust", "php", "ruby",
    "dotnet", "deno", "cocoapods", "cplusplus", "delphi",
    "docker", "terraform", "githubactions", "dotenv",
)


class DirectoryState(Enum):
    UNVISITED = 0
    MATCHING = 1
    MERGING = 2
    ATTACHED = 3
    CLOSED = 4


def short_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:ID_LENGTH]


def derive_root_id(base_path: str) -> str:
    return short_hash(os.path.abspath(base_path))


class IdAllocator:
    """Stable ids from (root id, name, path); collisions are re-salted until unique."""

    def __init__(self, root_id: str):
        self.root_id = root_id
        self._used: Set[str] = {root_id}

    def allocate(self, node: Payload) -> str:
        seed = f"{self.root_id}:{node.name}:{node.path}"
        candidate = short_hash(seed)
        n = 1
        while candidate in self._used:
            candidate = short_hash(f"{seed}#{n}")
            n += 1
        self._used.add(candidate)
        return candidate

    def assign(self, node: Payload) -> None:
        """Give ids to the node and to any new descendants."""
        if not node.id:
            node.id = self.allocate(node)
        for child in node.children:
            if not child.id:
                self.assign(child)


class Scanner:
    """Walks a source tree depth-first and builds the component tree.

    One directory at a time: list it, run every detector, merge their
    candidates, match rules against its files, apply the promotion table,
    then descend. The tree is owned by this thread; nothing runs in parallel.
    """

    def __init__(
        self,
        index: MatcherIndex,
        settings: Optional[Settings] = None,
        detectors: Optional[Dict[str, object]] = None,
        exclusion: Optional[ExclusionPredicate] = None,
        cancel: Optional[Callable[[], bool]] = None,
        scan_config: Optional[ScanConfig] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.index = index
        self.settings = settings or Settings()
        self.detectors = detectors if detectors is not None else DetectorRegistry.instantiate_all()
        self.dependency_detector = DependencyDetector(
            index,
            use_lock_files=self.settings.use_lock_files,
            include_transitive=self.settings.include_transitive,
        )
        self.promoter = Promoter(index.rules, index.categories)
        self.assembler = PayloadAssembler()
        self.exclusion = exclusion
        self.cancel = cancel
        self.scan_config = scan_config

        self.diagnostics: List[str] = []
        self.directory_states: Dict[str, DirectoryState] = {}
        self._provider: Optional[FileProvider] = None
        self._excluded: Optional[Callable[[str], bool]] = None
        self._ids: Optional[IdAllocator] = None
        self._file_count = 0
        self._directory_count = 0

    def _is_cancelled(self) -> bool:
        if self.cancel is None:
            return False
        if hasattr(self.cancel, "is_set"):
            return self.cancel.is_set()
        return bool(self.cancel())

    def _set_state(self, path: str, state: DirectoryState) -> None:
        previous = self.directory_states.get(path, DirectoryState.UNVISITED)
        if state.value != previous.value + 1:
            raise RuntimeError(f"Invalid directory transition for {path}: {previous.name} -> {state.name}")
        self.directory_states[path] = state

    def scan(self, base_path: str) -> Payload:
        base_path = os.path.abspath(base_path)
        if not os.path.isdir(base_path):
            raise NotADirectoryError(f"Not a directory: {base_path}")

        start = time.perf_counter()
        self.diagnostics = []
        self.directory_states = {}
        self._file_count = 0
        self._directory_count = 0
        self._provider = FileProvider(base_path)
        exclusion = self.exclusion or ExclusionPredicate(
            base_path, self.settings.exclude_patterns, use_defaults=self.settings.default_excludes,
        )
        self._excluded = exclusion.is_excluded

        root_id = self.settings.root_id or (self.scan_config.root_id if self.scan_config else "") or derive_root_id(base_path)
        self._ids = IdAllocator(root_id)
        root = Payload(name=ROOT_NAME, path="/", id=root_id)
        if self.scan_config is not None:
            for key, value in self.scan_config.properties.items():
                root.set_property(key, value)
            for entry in self.scan_config.techs:
                root.add_tech(entry.tech, entry.reason)

        self.logger.info(f"Scanning {base_path} with {len(self.detectors)} detectors and {len(self.index.rules)} rules")
        self._visit(base_path, root)
        root.close()

        resolve_component_refs(root)
        duration_ms = int((time.perf_counter() - start) * 1000)
        root.attach_field("metadata", {
            "scanned_at": datetime.now(timezone.utc).isoformat(),
            "duration_ms": duration_ms,
            "file_count": self._file_count,
            "directory_count": self._directory_count,
            "component_count": sum(1 for _ in root.walk()) - 1,
            "diagnostics": list(self.diagnostics),
        })
        self.logger.info(f"Scan complete: {self._directory_count} directories, {self._file_count} files in {duration_ms}ms")
        return root

    def _visit(self, abs_dir: str, parent: Payload) -> None:
        rel = self._provider.relative(abs_dir)
        if self._is_cancelled():
            raise ScanCancelledError(f"Scan cancelled before {rel}")

        self._set_state(rel, DirectoryState.MATCHING)
        try:
            entries = self._provider.list_dir(abs_dir)
        except OSError as e:
            message = f"directory not readable: {rel} ({e.strerror or e})"
            self.logger.warning(message)
            self.diagnostics.append(message)
            parent.add_note(message)
            entries = []
        entries = [e for e in entries if not self._excluded(e.path)]
        files = [e for e in entries if not e.is_dir]
        subdirs = [e for e in entries if e.is_dir]
        self._directory_count += 1
        self._file_count += len(files)

        named, virtual = self._run_detectors(files, abs_dir, rel)

        self._set_state(rel, DirectoryState.MERGING)
        node = parent
        if named:
            merged = self.assembler.assemble(named, parent.children)
            node = merged if any(c is merged for c in parent.children) else parent.add_child(merged)
        existing_children = {id(c) for c in node.children}
        if virtual:
            self.assembler.fold_virtual(node, virtual)

        matched: List[str] = []
        for candidate in named + virtual:
            matched.extend(candidate.node.techs)
        cache = ParseCache()
        for entry in files:
            language = detect_language(entry.name)
            if language:
                node.add_language(language)
            for tech, reason in self.index.match_file(entry.name):
                node.add_tech(tech, reason)
                matched.append(tech)
            matched.extend(self._match_content(entry, node, cache))

        seen: Set[str] = set()
        for tech in matched:
            if tech not in seen:
                seen.add(tech)
                self.promoter.apply(node, tech, rel)

        self._ids.assign(node)
        self._set_state(rel, DirectoryState.ATTACHED)
        cache.clear()
        self._provider.clear_cache()

        for entry in subdirs:
            self._visit(entry.path, node)

        if node is not parent:
            node.close()
        else:
            for child in node.children:
                if id(child) not in existing_children:
                    child.close()
        self._set_state(rel, DirectoryState.CLOSED)

    def _run_detectors(self, files: List[FileEntry], abs_dir: str, rel: str) -> Tuple[List[Candidate], List[Candidate]]:
        named: List[Candidate] = []
        virtual: List[Candidate] = []
        for rank, (name, detector) in enumerate(self.detectors.items()):
            try:
                results = detector.detect(files, abs_dir, rel, self._provider, self.dependency_detector) or []
            except Exception as e:
                self.logger.error(f"Error in {name} detector at {rel}: {e}", exc_info=True)
                continue
            for payload in results:
                candidate = Candidate(detector=name, rank=rank, node=payload)
                if payload.is_virtual:
                    virtual.append(candidate)
                else:
                    named.append(candidate)
            if results:
                self.logger.debug(f"{name} detector produced {len(results)} candidates at {rel}")
        return named, virtual

    def _match_content(self, entry: FileEntry, node: Payload, cache: ParseCache) -> List[str]:
        patterns = self.index.content_patterns_for(entry.name)
        if not patterns:
            return []
        try:
            content = self._provider.read_file(entry.path)
        except OSError as e:
            self.logger.debug(f"Could not read {entry.path}: {e}")
            return []
        matched: List[str] = []
        for compiled in patterns:
            if compiled.tech in matched:
                continue
            if evaluate(compiled, content, entry.path, cache):
                node.add_tech(compiled.tech, describe(compiled, entry.name))
                matched.append(compiled.tech)
        return matched
