"""Source fetching: git, svn, and tarball resources."""

from __future__ import annotations

from llvmenv.fetch.git import fetch_git, is_git_checkout
from llvmenv.fetch.retry import call_with_retries
from llvmenv.fetch.source import SourceFetcher
from llvmenv.fetch.svn import fetch_svn
from llvmenv.fetch.tarball import fetch_tarball, filename_from_url, hoisted_root

__all__ = [
    "SourceFetcher",
    "call_with_retries",
    "fetch_git",
    "fetch_svn",
    "fetch_tarball",
    "filename_from_url",
    "hoisted_root",
    "is_git_checkout",
]
