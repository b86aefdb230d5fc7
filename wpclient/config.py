"""Site configuration and a small on-disk registry of sites.

Passwords are kept encrypted with Fernet. The key is derived from the
``WPCLIENT_ENCRYPTION_KEY`` environment variable unless a secret is passed
explicitly.
"""
from __future__ import annotations

import base64
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from cryptography.fernet import Fernet, InvalidToken

from .client import WordPressClient
from .connection import DEFAULT_TIMEOUT
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = "WPCLIENT_ENCRYPTION_KEY"


@dataclass
class WordPressSite:
    """Configuration of a WordPress site."""

    url: str
    username: str
    password: str
    timeout: float = DEFAULT_TIMEOUT


def fernet_from_secret(secret: str) -> Fernet:
    """Build a Fernet cipher from an arbitrary passphrase."""
    key = base64.urlsafe_b64encode(secret.encode().ljust(32)[:32])
    return Fernet(key)


class SiteRegistry:
    """Keeps track of the sites a user works with."""

    def __init__(self, storage_path: str | Path = "sites.json", secret: Optional[str] = None) -> None:
        secret = secret if secret is not None else os.environ.get(ENCRYPTION_KEY_ENV)
        if not secret:
            raise ConfigurationError(f"Set {ENCRYPTION_KEY_ENV} to store site passwords")
        self.storage_path = Path(storage_path)
        self._fernet = fernet_from_secret(secret)
        self.sites: List[WordPressSite] = []
        self._load_sites()

    def _load_sites(self) -> None:
        if not self.storage_path.exists():
            return
        with self.storage_path.open() as f:
            data = json.load(f)
        for entry in data:
            try:
                password = self._fernet.decrypt(entry["password"].encode()).decode()
            except InvalidToken:
                raise ConfigurationError(
                    f"Cannot decrypt password for {entry['url']}; was the encryption key changed?"
                ) from None
            self.sites.append(
                WordPressSite(
                    entry["url"],
                    entry["username"],
                    password,
                    entry.get("timeout", DEFAULT_TIMEOUT),
                )
            )
        logger.debug("Loaded %d sites from %s", len(self.sites), self.storage_path)

    def _save_sites(self) -> None:
        data = [
            {
                "url": site.url,
                "username": site.username,
                "password": self._fernet.encrypt(site.password.encode()).decode(),
                "timeout": site.timeout,
            }
            for site in self.sites
        ]
        with self.storage_path.open("w") as f:
            json.dump(data, f, indent=2)

    # Site management -----------------------------------------------------
    def add_site(self, url: str, username: str, password: str, timeout: float = DEFAULT_TIMEOUT) -> WordPressSite:
        """Register a site, replacing any previous entry for the same URL."""
        self.sites = [s for s in self.sites if s.url != url]
        site = WordPressSite(url, username, password, timeout)
        self.sites.append(site)
        self._save_sites()
        return site

    def remove_site(self, url: str) -> None:
        remaining = [s for s in self.sites if s.url != url]
        if len(remaining) == len(self.sites):
            raise KeyError(url)
        self.sites = remaining
        self._save_sites()

    def get_site(self, url: str) -> WordPressSite:
        for site in self.sites:
            if site.url == url:
                return site
        raise KeyError(url)

    def client_for(self, url: str) -> WordPressClient:
        return WordPressClient(self.get_site(url))

    def clients(self) -> Dict[str, WordPressClient]:
        return {site.url: WordPressClient(site) for site in self.sites}
