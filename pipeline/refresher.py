"""
Cache refresher - builds the snapshot of actionable PR comments.

For each configured repository:
1. Fetch repository metadata and skip it if it failed or went stale
2. List pull requests created within the PR window
3. Fetch review comments, general comments and reviews for each PR
   (three concurrent calls), classify them and keep the actionable ones
4. Aggregate counts, drop empty PRs and repositories

The finished snapshot and its metadata are written through CacheStore.
A failing repository or PR never aborts the refresh.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError

from classifier.classifier import classify_comment, summarize_comments
from fetchers.github import GhCommandError, GitHubFetcher, login_of
from models.config_models import Config
from models.data_models import (
    ActionableComment,
    CacheSnapshot,
    Comment,
    PullRequestAnalysis,
    PullRequestSummary,
    RepositorySummary,
    SeverityCounts,
    UpdateMetadata,
)
from storage.cache_store import CacheStore
from utils.diff_stats import summarize_diff

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Non-dict records, missing keys, bad timestamps and model validation failures
MALFORMED_RECORD_ERRORS = (AttributeError, KeyError, TypeError, ValueError, ValidationError)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp ("2025-01-15T10:30:00Z")."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def split_repository(full_name: str) -> tuple[str, str]:
    owner, _, name = full_name.partition("/")
    return owner, name


def to_actionable(comment: Comment) -> Optional[ActionableComment]:
    """Classify a comment and return it tagged, or None if not actionable."""
    verdict = classify_comment(comment.body)
    if not verdict.actionable:
        return None
    return ActionableComment(
        **comment.model_dump(),
        action_type=verdict.action_type,
        severity=verdict.severity,
    )


def review_comment_from_api(raw: dict[str, Any]) -> Comment:
    return Comment(
        id=raw["id"],
        type="review_comment",
        author=login_of(raw.get("user")),
        body=raw.get("body") or "",
        created_at=parse_timestamp(raw.get("created_at")),
        path=raw.get("path"),
        line=raw.get("line") or raw.get("original_line"),
        url=raw.get("html_url"),
    )


def general_comment_from_api(raw: dict[str, Any], owner: str, repo: str, pr_number: int) -> Comment:
    url = raw.get("url") or f"https://github.com/{owner}/{repo}/pull/{pr_number}#issuecomment-{raw['id']}"
    return Comment(
        id=raw["id"],
        type="general_comment",
        author=login_of(raw.get("author")),
        body=raw.get("body") or "",
        created_at=parse_timestamp(raw.get("createdAt")),
        url=url,
    )


def review_from_api(raw: dict[str, Any]) -> Comment:
    return Comment(
        id=raw["id"],
        type="review",
        author=login_of(raw.get("user")),
        body=raw.get("body") or "",
        created_at=parse_timestamp(raw.get("submitted_at")),
        url=raw.get("html_url"),
        state=raw.get("state"),
    )


def count_severities(comments: list[ActionableComment]) -> SeverityCounts:
    return SeverityCounts(
        high=sum(1 for c in comments if c.severity == "high"),
        medium=sum(1 for c in comments if c.severity == "medium"),
        low=sum(1 for c in comments if c.severity == "low"),
    )


def build_pr_summary(pr: dict[str, Any], comments: list[ActionableComment]) -> PullRequestSummary:
    """Combine raw `gh pr list`/`gh pr view` fields with the PR's actionable comments."""
    return PullRequestSummary(
        number=pr["number"],
        title=pr.get("title") or "",
        author=login_of(pr.get("author")),
        created_at=parse_timestamp(pr.get("createdAt")),
        url=pr.get("url"),
        updated_at=parse_timestamp(pr.get("updatedAt")),
        review_decision=pr.get("reviewDecision") or None,
        is_draft=pr.get("isDraft"),
        actionable_comments=comments,
        actionable_count=len(comments),
        severity_counts=count_severities(comments),
    )


class Refresher:
    """
    Long-lived refresher holding the fetcher, the store and the repository list.

    Only one refresh runs at a time: refresh_all() waits for an in-flight
    refresh to finish, refresh_if_idle() returns None instead.
    """

    def __init__(
        self,
        fetcher: GitHubFetcher,
        store: CacheStore,
        repositories: list[str],
        stale_after_days: int = 30,
        pr_window_days: int = 30,
        pr_state: str = "all",
        pr_limit: int = 50,
        clock: Clock = utc_now,
    ):
        """
        Initialize the refresher.

        Args:
            fetcher: GitHubFetcher used for every `gh` call
            store: CacheStore that persists the snapshot
            repositories: Repositories to monitor, as "owner/name"
            stale_after_days: Skip repositories not pushed within this many days
            pr_window_days: Only consider PRs created within this many days
            pr_state: Default PR state filter (open, closed, merged, all)
            pr_limit: Maximum PRs listed per repository
            clock: Returns the current time (timezone-aware)
        """
        self.fetcher = fetcher
        self.store = store
        self.repositories = list(repositories)
        self.stale_after = timedelta(days=stale_after_days)
        self.pr_window = timedelta(days=pr_window_days)
        self.pr_state = pr_state
        self.pr_limit = pr_limit
        self.clock = clock
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Config) -> "Refresher":
        return cls(
            fetcher=GitHubFetcher.from_config(config.github),
            store=CacheStore(config.refresh.data_dir),
            repositories=config.refresh.repositories,
            stale_after_days=config.refresh.stale_after_days,
            pr_window_days=config.refresh.pr_window_days,
            pr_state=config.refresh.pr_state,
            pr_limit=config.refresh.pr_limit,
        )

    @property
    def is_refreshing(self) -> bool:
        return self._lock.locked()

    def load_cached(self) -> Optional[CacheSnapshot]:
        return self.store.load_snapshot()

    def get_metadata(self) -> Optional[UpdateMetadata]:
        return self.store.load_metadata()

    def refresh_if_idle(self, pr_state: Optional[str] = None) -> Optional[CacheSnapshot]:
        """Run a refresh unless one is already in flight (then return None)."""
        if not self._lock.acquire(blocking=False):
            logger.info("Refresh already in progress, skipping")
            return None
        try:
            return self._refresh(pr_state)
        finally:
            self._lock.release()

    def refresh_all(self, pr_state: Optional[str] = None) -> CacheSnapshot:
        """
        Rebuild and persist the snapshot for every configured repository.

        Args:
            pr_state: PR state filter for this run (defaults to the configured one)

        Returns:
            The new CacheSnapshot (returned even if writing it to disk failed)
        """
        with self._lock:
            return self._refresh(pr_state)

    def _refresh(self, pr_state: Optional[str]) -> CacheSnapshot:
        state = pr_state or self.pr_state
        now = self.clock()
        logger.info("=" * 60)
        logger.info(f"Starting refresh of {len(self.repositories)} repositories (state={state})")

        snapshot = CacheSnapshot(last_update=now)

        for full_name in self.repositories:
            owner, name = split_repository(full_name)
            try:
                repository = self._refresh_repository(owner, name, state, now)
            except Exception as e:
                logger.error(f"✗ Error processing {full_name}: {e}")
                continue

            if repository is None:
                continue
            if repository.pull_requests:
                snapshot.repositories.append(repository)
                logger.info(f"  ✓ {full_name}: {len(repository.pull_requests)} PRs with actionable comments")
            else:
                logger.info(f"  {full_name}: no actionable comments found")

        try:
            metadata = self.store.save(snapshot)
        except OSError as e:
            logger.error(f"✗ Failed to write cache files: {e}")
        else:
            logger.info(
                f"Refresh complete: {metadata.repository_count} repositories, "
                f"{metadata.total_prs} PRs, {metadata.total_actionable_comments} actionable comments"
            )

        return snapshot

    def _refresh_repository(
        self,
        owner: str,
        name: str,
        state: str,
        now: datetime,
    ) -> Optional[RepositorySummary]:
        """Process one repository; None means it was skipped."""
        full_name = f"{owner}/{name}"
        try:
            repo_data = self.fetcher.fetch_repo(owner, name)
        except GhCommandError as e:
            logger.warning(f"Skipping {full_name}: {e}")
            return None

        last_push = parse_timestamp(repo_data.get("pushedAt"))
        if last_push is None or last_push < now - self.stale_after:
            logger.info(f"Skipping {full_name}: no push within {self.stale_after.days} days")
            return None

        repo_owner = login_of(repo_data.get("owner")) if repo_data.get("owner") else owner
        repository = RepositorySummary(
            owner=repo_owner,
            name=repo_data.get("name") or name,
            url=repo_data.get("url") or f"https://github.com/{full_name}",
            last_push=last_push,
        )

        logger.info(f"Processing {repository.full_name}...")
        prs = self.fetcher.fetch_pr_list(repository.owner, repository.name, state=state, limit=self.pr_limit)
        cutoff = now - self.pr_window

        for pr in prs:
            try:
                summary = self._process_pr(repository.owner, repository.name, pr, cutoff)
            except MALFORMED_RECORD_ERRORS as e:
                logger.warning(f"  Skipping malformed PR in {repository.full_name}: {e!r}")
                continue
            if summary is not None:
                repository.pull_requests.append(summary)

        return repository

    def _process_pr(
        self,
        owner: str,
        repo: str,
        pr: dict[str, Any],
        cutoff: datetime,
    ) -> Optional[PullRequestSummary]:
        """Summarize one listed PR; None when it is out of the window or has nothing actionable."""
        try:
            created_at = parse_timestamp(pr.get("createdAt"))
        except ValueError:
            logger.warning(f"  PR #{pr.get('number')}: unparseable createdAt {pr.get('createdAt')!r}, skipping")
            return None
        if created_at is None or created_at < cutoff:
            return None

        number = pr["number"]
        logger.debug(f"  PR #{number}: {pr.get('title', '')}")
        comments = self.collect_actionable_comments(owner, repo, number)
        if not comments:
            return None
        return build_pr_summary(pr, comments)

    def collect_actionable_comments(self, owner: str, repo: str, pr_number: int) -> list[ActionableComment]:
        """
        Fetch all three comment sources for a PR and keep the actionable ones.

        The sources are fetched concurrently. A failing source contributes no
        comments; it does not affect the other two.

        Returns:
            Review comments, then general comments, then reviews
        """
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix=f"pr-{pr_number}") as pool:
            review_comments = pool.submit(
                self._fetch_source, "review comments", self.fetcher.fetch_review_comments, owner, repo, pr_number
            )
            general_comments = pool.submit(
                self._fetch_source, "general comments", self.fetcher.fetch_general_comments, owner, repo, pr_number
            )
            reviews = pool.submit(
                self._fetch_source, "reviews", self.fetcher.fetch_reviews, owner, repo, pr_number
            )
            raw_review_comments = review_comments.result()
            raw_general_comments = general_comments.result()
            raw_reviews = reviews.result()

        # Plain COMMENTED reviews are left out; their text is usually repeated in the review comments
        raw_reviews = [
            raw for raw in raw_reviews
            if isinstance(raw, dict) and raw.get("body") and raw.get("state") != "COMMENTED"
        ]

        candidates: list[Comment] = []
        candidates += self._convert_records("review comment", pr_number, raw_review_comments, review_comment_from_api)
        candidates += self._convert_records(
            "general comment",
            pr_number,
            raw_general_comments,
            lambda raw: general_comment_from_api(raw, owner, repo, pr_number),
        )
        candidates += self._convert_records("review", pr_number, raw_reviews, review_from_api)

        actionable = []
        for comment in candidates:
            tagged = to_actionable(comment)
            if tagged is not None:
                actionable.append(tagged)
        return actionable

    @staticmethod
    def _convert_records(
        label: str,
        pr_number: int,
        records: list[dict[str, Any]],
        convert: Callable[[dict[str, Any]], Comment],
    ) -> list[Comment]:
        """Convert raw API records, logging and skipping any that are malformed."""
        comments = []
        for raw in records:
            try:
                comments.append(convert(raw))
            except MALFORMED_RECORD_ERRORS as e:
                logger.warning(f"  PR #{pr_number}: skipping malformed {label} - {e!r}")
        return comments

    @staticmethod
    def _fetch_source(
        label: str,
        fetch: Callable[[str, str, int], list[dict[str, Any]]],
        owner: str,
        repo: str,
        pr_number: int,
    ) -> list[dict[str, Any]]:
        try:
            return fetch(owner, repo, pr_number) or []
        except GhCommandError as e:
            logger.warning(f"  PR #{pr_number}: could not fetch {label} - {e}")
            return []

    def analyze_pr(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        use_cache: bool = True,
    ) -> PullRequestAnalysis:
        """
        Actionable-comment view of a single PR.

        Served from the snapshot when the PR is cached and use_cache is set;
        otherwise fetched live, with comments sorted newest first and a
        summary of the PR's diff.

        Raises:
            GhCommandError: If the live PR lookup fails
        """
        if use_cache:
            snapshot = self.load_cached()
            cached_pr = snapshot.find_pull_request(owner, repo, pr_number) if snapshot else None
            if cached_pr is not None:
                return PullRequestAnalysis(
                    pull_request=cached_pr,
                    stats=summarize_comments(cached_pr.actionable_comments),
                    from_cache=True,
                    last_update=snapshot.last_update,
                )

        logger.info(f"Analyzing {owner}/{repo} PR #{pr_number} live")
        pr = self.fetcher.fetch_pr_details(owner, repo, pr_number)
        comments = self.collect_actionable_comments(owner, repo, pr_number)
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        comments.sort(key=lambda c: c.created_at or oldest, reverse=True)

        try:
            diff = summarize_diff(self.fetcher.fetch_pr_diff(owner, repo, pr_number))
        except GhCommandError as e:
            logger.warning(f"Could not fetch diff for PR #{pr_number}: {e}")
            diff = None

        return PullRequestAnalysis(
            pull_request=build_pr_summary(pr, comments),
            stats=summarize_comments(comments),
            diff=diff,
            from_cache=False,
        )
