"""GitHub client that talks to the API through the `gh` command-line tool.

Every call runs `gh` as a subprocess with a bounded timeout and a bounded
output size. Any failure (non-zero exit, timeout, oversized output, missing
executable, malformed JSON) is raised as GhCommandError carrying the full
command line so the caller can log it and move on.
"""

import json
import logging
import shlex
import subprocess
import threading
from typing import Any, Optional, Sequence

from models.config_models import GitHubCliConfig

logger = logging.getLogger(__name__)

PR_LIST_FIELDS = "number,title,author,createdAt,updatedAt,url,reviewDecision,isDraft"
PR_DETAIL_FIELDS = "number,title,body,author,createdAt,updatedAt,url,reviewDecision,isDraft"
REPO_FIELDS = "name,owner,url,updatedAt,pushedAt"

READ_CHUNK_BYTES = 64 * 1024
STDERR_LIMIT_BYTES = 64 * 1024


class GhCommandError(Exception):
    """A single `gh` invocation failed."""

    def __init__(self, command: str, message: str):
        self.command = command
        self.message = message
        super().__init__(f"GitHub CLI error running `{command}`: {message}")


def parse_json_stream(text: str) -> Any:
    """Parse `gh` JSON output.

    `gh api --paginate` prints one JSON document per page back to back
    (e.g. ``[...][...]``). Multiple arrays are merged into one list; a single
    document is returned as-is.

    Raises:
        ValueError: If the text is empty or not valid JSON
    """
    decoder = json.JSONDecoder()
    documents = []
    position = 0
    length = len(text)

    while True:
        # Skip whitespace between documents
        while position < length and text[position].isspace():
            position += 1
        if position >= length:
            break
        document, position = decoder.raw_decode(text, position)
        documents.append(document)

    if not documents:
        raise ValueError("empty output, expected JSON")
    if len(documents) == 1:
        return documents[0]
    if all(isinstance(document, list) for document in documents):
        merged = []
        for document in documents:
            merged.extend(document)
        return merged
    raise ValueError(f"expected a single JSON document, got {len(documents)}")


def _drain_stderr(stream, chunks: list[bytes]) -> None:
    """Read a stderr pipe to EOF, keeping roughly the first STDERR_LIMIT_BYTES."""
    kept = 0
    with stream:
        while True:
            chunk = stream.read1(READ_CHUNK_BYTES)
            if not chunk:
                return
            if kept < STDERR_LIMIT_BYTES:
                chunks.append(chunk)
                kept += len(chunk)


class GitHubFetcher:
    """Fetch repository, pull request and comment data via the `gh` CLI.

    Authentication is whatever `gh auth` has configured; this class never
    sees a token.
    """

    def __init__(
        self,
        gh_path: str = "gh",
        timeout_seconds: float = 60,
        max_output_bytes: int = 50 * 1024 * 1024,
    ):
        """Initialize the CLI wrapper.

        Args:
            gh_path: Executable name or path for the GitHub CLI
            timeout_seconds: Per-call timeout
            max_output_bytes: Per-call cap on standard output size
        """
        self.gh_path = gh_path
        self.timeout_seconds = timeout_seconds
        self.max_output_bytes = max_output_bytes

    @classmethod
    def from_config(cls, config: GitHubCliConfig) -> "GitHubFetcher":
        return cls(
            gh_path=config.gh_path,
            timeout_seconds=config.timeout_seconds,
            max_output_bytes=config.max_output_bytes,
        )

    def _run(self, args: Sequence[str]) -> str:
        """Run `gh` with the given arguments and return its standard output.

        Output is read in chunks while the process runs. The process is
        killed as soon as it exceeds the output cap or the timeout.

        Raises:
            GhCommandError: On any failure of the call
        """
        argv = [self.gh_path, *args]
        command = shlex.join(argv)
        logger.debug(f"Running: {command}")

        try:
            process = subprocess.Popen(argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as e:
            raise GhCommandError(command, str(e)) from e

        timed_out = threading.Event()

        def kill_on_timeout():
            timed_out.set()
            process.kill()

        timer = threading.Timer(self.timeout_seconds, kill_on_timeout)
        timer.daemon = True
        stderr_chunks: list[bytes] = []
        stderr_reader = threading.Thread(
            target=_drain_stderr, args=(process.stderr, stderr_chunks), daemon=True
        )
        timer.start()
        stderr_reader.start()

        try:
            stdout = self._read_capped(process, command)
            returncode = process.wait()
        finally:
            timer.cancel()
            if process.poll() is None:
                process.kill()
                process.wait()
            process.stdout.close()

        if timed_out.is_set():
            raise GhCommandError(command, f"timed out after {self.timeout_seconds}s")

        stderr_reader.join(timeout=1)
        if returncode != 0:
            stderr = b"".join(stderr_chunks).decode("utf-8", errors="replace").strip()
            raise GhCommandError(
                command,
                f"exit status {returncode}: {stderr[:500] or 'no error output'}",
            )

        return stdout.decode("utf-8", errors="replace")

    def _read_capped(self, process: subprocess.Popen, command: str) -> bytes:
        """Read stdout to EOF, killing the process once it passes max_output_bytes."""
        chunks = []
        size = 0
        while True:
            chunk = process.stdout.read1(READ_CHUNK_BYTES)
            if not chunk:
                return b"".join(chunks)
            size += len(chunk)
            if size > self.max_output_bytes:
                process.kill()
                raise GhCommandError(command, f"output exceeded {self.max_output_bytes} bytes")
            chunks.append(chunk)

    def run_json(self, args: Sequence[str]) -> Any:
        """Run `gh` and parse its output as JSON."""
        output = self._run(args)
        try:
            return parse_json_stream(output)
        except ValueError as e:
            raise GhCommandError(shlex.join([self.gh_path, *args]), f"invalid JSON output: {e}") from e

    def run_text(self, args: Sequence[str]) -> str:
        """Run `gh` and return its raw output."""
        return self._run(args)

    def fetch_repo(self, owner: str, repo: str) -> dict[str, Any]:
        """Fetch repository metadata (name, owner, url, updatedAt, pushedAt).

        Returns:
            Raw dict as printed by ``gh repo view --json``
        """
        return self.run_json(["repo", "view", f"{owner}/{repo}", "--json", REPO_FIELDS])

    def fetch_pr_list(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """List pull requests for a repository.

        Args:
            owner: Repository owner (e.g., "octocat")
            repo: Repository name (e.g., "hello-world")
            state: gh state filter: open, closed, merged or all
            limit: Maximum number of PRs returned by gh

        Returns:
            List of raw PR dicts with the fields in PR_LIST_FIELDS
        """
        prs = self.run_json([
            "pr", "list",
            "--repo", f"{owner}/{repo}",
            "--state", state,
            "--json", PR_LIST_FIELDS,
            "--limit", str(limit),
        ])
        logger.debug(f"Listed {len(prs)} PRs ({state}) in {owner}/{repo}")
        return prs

    def fetch_pr_details(self, owner: str, repo: str, pr_number: int) -> dict[str, Any]:
        """Fetch a single pull request's metadata."""
        return self.run_json([
            "pr", "view", str(pr_number),
            "--repo", f"{owner}/{repo}",
            "--json", PR_DETAIL_FIELDS,
        ])

    def fetch_review_comments(self, owner: str, repo: str, pr_number: int) -> list[dict[str, Any]]:
        """Fetch line-level review comments (REST shape: user.login, created_at, path, line)."""
        return self.run_json([
            "api", f"repos/{owner}/{repo}/pulls/{pr_number}/comments", "--paginate",
        ])

    def fetch_general_comments(self, owner: str, repo: str, pr_number: int) -> list[dict[str, Any]]:
        """Fetch conversation comments (gh shape: author.login, createdAt)."""
        result = self.run_json([
            "pr", "view", str(pr_number),
            "--repo", f"{owner}/{repo}",
            "--json", "comments",
        ])
        return result.get("comments") or []

    def fetch_reviews(self, owner: str, repo: str, pr_number: int) -> list[dict[str, Any]]:
        """Fetch formal reviews (REST shape: user.login, state, submitted_at)."""
        return self.run_json([
            "api", f"repos/{owner}/{repo}/pulls/{pr_number}/reviews", "--paginate",
        ])

    def fetch_pr_diff(self, owner: str, repo: str, pr_number: int) -> str:
        """Fetch the unified diff of a pull request as raw text."""
        return self.run_text(["pr", "diff", str(pr_number), "--repo", f"{owner}/{repo}"])


def login_of(user: Optional[dict[str, Any]]) -> str:
    """Extract a login from a user/author object; deleted accounts come back as null."""
    if not user:
        return "ghost"
    return user.get("login") or "ghost"
