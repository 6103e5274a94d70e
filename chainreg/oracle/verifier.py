"""Identity attestation: does a GitHub profile prove control of a key?

The proof is the exact text ``"Solana Wallet: <key>"`` somewhere in the
profile bio. Matching is a case-sensitive substring test with no
normalization, one key per check: a real owner with a typo is rejected
rather than accepting anything looser.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol
from urllib.parse import quote

import httpx

from chainreg.errors import TransportError

logger = logging.getLogger(__name__)

PROOF_PREFIX = "Solana Wallet: "
GITHUB_API_URL = "https://api.github.com"


class ProfileFetchError(TransportError):
    """The profile could not be fetched; says nothing about the proof."""


def proof_string(claimed_key: str) -> str:
    """Return the text a user must publish to prove control of *claimed_key*."""
    return PROOF_PREFIX + claimed_key


def contains_proof(profile_text: str, claimed_key: str) -> bool:
    return proof_string(claimed_key) in profile_text


class ProfileFetcher(Protocol):
    def fetch_profile(self, handle: str) -> str:
        """Return the public profile text for *handle* ("" if there is none)."""
        ...


class GitHubProfileFetcher:
    """Fetches a GitHub user's bio through the REST API.

    Parameters
    ----------
    token:
        GitHub access token sent as ``Authorization: token <token>``.
        Empty means unauthenticated (low rate limit).
    client:
        Optional ``httpx.Client``; one is created per call otherwise.
    """

    def __init__(
        self,
        token: str = "",
        client: Optional[httpx.Client] = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
    ) -> None:
        self._token = token
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": "Github Oracle", "Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    def fetch_profile(self, handle: str) -> str:
        url = f"{self._base_url}/users/{quote(handle, safe='')}"
        try:
            if self._client is not None:
                resp = self._client.get(url, headers=self._headers())
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    resp = client.get(url, headers=self._headers())
        except httpx.HTTPError as exc:
            raise ProfileFetchError(f"GitHub request for {handle!r} failed: {exc}") from exc

        if resp.status_code == 404:
            logger.info("GitHub user %r does not exist", handle)
            return ""
        if resp.status_code != 200:
            raise ProfileFetchError(
                f"GitHub returned {resp.status_code} for user {handle!r}: {resp.text[:200]}"
            )
        try:
            user_data = resp.json()
        except ValueError as exc:
            raise ProfileFetchError(f"GitHub returned malformed JSON for {handle!r}") from exc
        if not isinstance(user_data, dict):
            raise ProfileFetchError(f"GitHub returned an unexpected payload for {handle!r}")
        return user_data.get("bio") or ""


class IdentityVerifier:
    """Checks an external identity's profile for the proof of a claimed key."""

    def __init__(self, fetcher: ProfileFetcher) -> None:
        self._fetcher = fetcher

    def verify(self, handle: str, claimed_key: str) -> bool:
        """Return True iff *handle*'s profile contains ``proof_string(claimed_key)``.

        Raises ``ProfileFetchError`` if the profile cannot be fetched.
        """
        profile_text = self._fetcher.fetch_profile(handle)
        verified = contains_proof(profile_text, claimed_key)
        logger.info("Attestation check for %r with key %s: %s", handle, claimed_key, verified)
        return verified
