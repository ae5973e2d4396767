"""Local repository analysis feeding documentation generation."""

import os
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import git
from git import Repo

from .constants import IGNORED_DIRECTORIES, LANGUAGE_EXTENSIONS
from .documentation.models import AnalysisSummary, Repository, RepositoryAnalysis
from .exceptions import NotFound
from .utils import is_url, logger, utcnow

RECENT_COMMIT_LIMIT = 50
ACTIVITY_WINDOW_DAYS = 30


class RepositoryAnalyzer:
    """Walk a working tree and summarize it for the documentation generator."""

    def __init__(self, path: str, repository_id: Optional[str] = None, max_file_size: int = 1_000_000):
        self.path = Path(path).expanduser().resolve()
        if not self.path.is_dir():
            raise NotFound(f"Repository path {self.path} does not exist")

        self.repository_id = repository_id or self.path.name
        self.max_file_size = max_file_size
        self.repo: Optional[Repo] = None
        self._initialize_repo()

    def _initialize_repo(self):
        try:
            self.repo = Repo(self.path, search_parent_directories=False)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError):
            logger.debug(f"No git repository found at {self.path}")
            self.repo = None

    def analyze(self) -> RepositoryAnalysis:
        """Build the structure, language, contributor and commit summary."""
        structure = self._scan_structure()

        languages: Counter = Counter()
        total_lines = 0
        for info in structure.values():
            total_lines += info['lines']
            if info['language']:
                languages[info['language']] += info['lines']

        commits = self._recent_commits()
        contributors = self._contributors(commits)
        last_activity = commits[0]['date'] if commits else self._latest_mtime(structure)

        summary = AnalysisSummary(
            total_files=len(structure),
            total_lines=total_lines,
            primary_language=languages.most_common(1)[0][0] if languages else "Unknown",
            last_activity=last_activity,
            commit_frequency=self._commit_frequency(commits),
        )

        repository = self.repository(
            last_updated=last_activity,
            language=summary.primary_language,
        )
        logger.info(
            f"Analyzed {repository.name}: {summary.total_files} files, "
            f"{summary.total_lines} lines, primary language {summary.primary_language}"
        )

        return RepositoryAnalysis(
            repository=repository,
            structure=structure,
            contributors=contributors,
            languages=dict(languages.most_common()),
            recent_commits=[
                {**commit, 'date': commit['date'].isoformat()} for commit in commits
            ],
            summary=summary,
        )

    def repository(self, last_updated: Optional[datetime] = None, language: Optional[str] = None) -> Repository:
        return Repository(
            id=self.repository_id,
            name=self.path.name,
            url=self._remote_url(),
            last_updated=last_updated or utcnow(),
            description=self._description(),
            language=language,
        )

    def _scan_structure(self) -> Dict[str, Dict[str, Any]]:
        structure = {}
        for root, dirs, files in os.walk(self.path):
            dirs[:] = sorted(d for d in dirs if d not in IGNORED_DIRECTORIES and not d.startswith('.'))
            for name in sorted(files):
                file_path = Path(root) / name
                relative = file_path.relative_to(self.path).as_posix()
                language = LANGUAGE_EXTENSIONS.get(file_path.suffix.lower())
                structure[relative] = {
                    'type': 'file',
                    'language': language,
                    'lines': self._count_lines(file_path) if language else 0,
                    'mtime': file_path.stat().st_mtime,
                }
        return structure

    def _count_lines(self, file_path: Path) -> int:
        try:
            if file_path.stat().st_size > self.max_file_size:
                return 0
            with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
                return sum(1 for _ in f)
        except OSError as e:
            logger.debug(f"Skipping {file_path}: {e}")
            return 0

    @staticmethod
    def _latest_mtime(structure: Dict[str, Dict[str, Any]]) -> Optional[datetime]:
        mtimes = [info['mtime'] for info in structure.values()]
        if not mtimes:
            return None
        return datetime.fromtimestamp(max(mtimes), tz=timezone.utc)

    def _recent_commits(self) -> List[Dict[str, Any]]:
        if not self.repo:
            return []
        try:
            commits = list(self.repo.iter_commits(max_count=RECENT_COMMIT_LIMIT))
        except (git.GitCommandError, ValueError) as e:
            # ValueError: a fresh repository without commits
            logger.debug(f"Could not read commits: {e}")
            return []

        return [
            {
                'sha': commit.hexsha[:8],
                'message': commit.message.strip().split('\n')[0],
                'author': commit.author.name,
                'email': commit.author.email,
                'date': commit.committed_datetime.astimezone(timezone.utc),
            }
            for commit in commits
        ]

    @staticmethod
    def _contributors(commits: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        counts = Counter((commit['author'], commit['email']) for commit in commits)
        return [
            {'name': name, 'email': email, 'commits': count}
            for (name, email), count in counts.most_common()
        ]

    @staticmethod
    def _commit_frequency(commits: List[Dict[str, Any]], now: Optional[datetime] = None) -> float:
        """Commits per week over the activity window."""
        now = now or utcnow()
        cutoff = now - timedelta(days=ACTIVITY_WINDOW_DAYS)
        recent = sum(1 for commit in commits if commit['date'] >= cutoff)
        return round(recent / (ACTIVITY_WINDOW_DAYS / 7), 2)

    def _remote_url(self) -> Optional[str]:
        if not self.repo:
            return None
        try:
            url = self.repo.remotes.origin.url
        except (AttributeError, IndexError, ValueError):
            return None
        if url.startswith('git@'):
            host, _, path = url[4:].partition(':')
            url = f"https://{host}/{path}"
        if url.endswith('.git'):
            url = url[:-4]
        # Local path remotes cannot be linked from the docs.
        return url if is_url(url) else None

    def _description(self) -> Optional[str]:
        for name in ('README.md', 'README.rst', 'README.txt', 'README'):
            readme = self.path / name
            if readme.is_file():
                for line in readme.read_text(encoding='utf-8', errors='ignore').splitlines():
                    line = line.strip()
                    if line and not line.startswith(('#', '=', '[', '!', '<')):
                        return line[:200]
        return None
