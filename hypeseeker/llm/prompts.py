"""Prompt templates for relevance scoring and enrichment."""

import yaml

from hypeseeker.config.schemas import InterestProfile
from hypeseeker.store.models import Post


SCORE_MAX_TOKENS = 256
ENRICH_MAX_TOKENS = 512

_NO_DESCRIPTION = "(no description)"

_LANGUAGE_NAMES = {
    "en": "English",
    "ru": "Russian",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "zh": "Chinese",
    "ja": "Japanese",
}

_SCORE_TEMPLATE = """You are a filter for ML/AI news. Rate how relevant the post is for the user.

## User profile:
{profile}

## Interests (high = 0.8-1.0, medium = 0.5-0.7, low = 0.2-0.4):
{interests}
## Exclude (score = 0):
{exclude}

## Post to rate:
- Source: {source}
- Name: {name}
- Author: {username}
- Description: {description}
- Stars/likes: {stars}

## Task:
Rate the relevance of the post (0.0-1.0) based on the user's interests.

Answer ONLY with valid JSON (no markdown):
{{"score": 0.0, "matched_interest": "interest name or null"}}"""

_ENRICH_TEMPLATE = """You help analyze ML/AI news. Write in {language}.

## Post:
- Source: {source}
- Name: {name}
- Author: {username}
- Description: {description}
- URL: {url}
- Stars/likes: {stars}
- Matched interest: {matched_interest}

## User profile:
{profile}

## Task:
Write two short paragraphs in {language}:

1. **What it is:** Briefly describe the project or news (2-3 sentences). What it is, what it is for, which problem it solves.

2. **Why it is in the feed:** Explain why this is relevant for the user, based on their interests (1-2 sentences).

Answer ONLY with valid JSON (no markdown):
{{"summary": "...", "relevance": "..."}}"""


def language_name(code: str) -> str:
    """Human-readable language name for a language code."""
    return _LANGUAGE_NAMES.get(code.lower(), code)


def build_score_prompt(profile: InterestProfile, post: Post) -> str:
    """Build the relevance scoring prompt for one post.

    Args:
        profile: User interest profile.
        post: Post to score.

    Returns:
        Formatted prompt string.
    """
    interests = yaml.safe_dump(
        profile.interests.model_dump(),
        allow_unicode=True,
        sort_keys=False,
    )
    return _SCORE_TEMPLATE.format(
        profile=profile.profile,
        interests=interests,
        exclude=", ".join(profile.exclude),
        source=post.source,
        name=post.name,
        username=post.username,
        description=post.description or _NO_DESCRIPTION,
        stars=post.stars,
    )


def build_enrich_prompt(profile: InterestProfile, post: Post, language: str) -> str:
    """Build the enrichment prompt for one post.

    Args:
        profile: User interest profile.
        post: Post to describe.
        language: Language code for the answer.

    Returns:
        Formatted prompt string.
    """
    return _ENRICH_TEMPLATE.format(
        language=language_name(language),
        source=post.source,
        name=post.name,
        username=post.username,
        description=post.description or _NO_DESCRIPTION,
        url=post.url,
        stars=post.stars,
        matched_interest=post.matched_interest or "general interest in ML/AI",
        profile=profile.profile,
    )
