"""HTTP adapters for the supported content sources."""

from hypeseeker.collectors.platform.github import GitHubFetcher
from hypeseeker.collectors.platform.huggingface import HuggingFaceFetcher
from hypeseeker.collectors.platform.reddit import RedditFetcher
from hypeseeker.collectors.platform.replicate import ReplicateFetcher


__all__ = ["GitHubFetcher", "HuggingFaceFetcher", "RedditFetcher", "ReplicateFetcher"]
