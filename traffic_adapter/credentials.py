import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

# Either an ASCII or a full-width colon separates key and value.
_SEPARATOR = re.compile(r'[：:]')

CDN_ENV_VARS = {
    'email': 'CFSECRET_ID',
    'api_key': 'CFSECRET_KEY',
    'account_tag': 'CFACCOUNT_TAG',
    'zone_tag': 'CFZONE_TAG',
}
CDN_FILE_MARKERS = {
    'email': 'cfid',
    'api_key': 'cfkey',
    'account_tag': 'cfuserid',
    'zone_tag': 'zonetag',
}

EDGE_ENV_VARS = {
    'access_key_id': 'ESASECRET_ID',
    'access_key_secret': 'ESASECRET_KEY',
}
EDGE_FILE_MARKERS = {
    'access_key_id': 'accessKeyId',
    'access_key_secret': 'accessKeySecret',
}


@dataclass(frozen=True)
class CdnCredentials:
    email: Optional[str] = None
    api_key: Optional[str] = None
    account_tag: Optional[str] = None
    zone_tag: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return all([self.email, self.api_key, self.account_tag, self.zone_tag])


@dataclass(frozen=True)
class EdgeCredentials:
    access_key_id: Optional[str] = None
    access_key_secret: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return all([self.access_key_id, self.access_key_secret])


class CredentialSource(ABC):
    """Yields whatever credential values it can find, keyed by field name."""

    @abstractmethod
    def load(self) -> Dict[str, Optional[str]]:
        """Return field -> value; missing values are None."""


class EnvCredentialSource(CredentialSource):
    def __init__(self, variables: Mapping[str, str], environ: Optional[Mapping[str, str]] = None):
        self.variables = dict(variables)
        self.environ = environ

    def load(self) -> Dict[str, Optional[str]]:
        environ = os.environ if self.environ is None else self.environ
        return {name: environ.get(var) or None for name, var in self.variables.items()}


class KeyFileCredentialSource(CredentialSource):
    """
    Parse ``key: value`` lines from a text file.

    A line is assigned to a field when its key part contains the field's
    marker. Only the text between the first and second separator is kept.
    """

    def __init__(self, path: Union[str, Path], markers: Mapping[str, str]):
        self.path = Path(path)
        self.markers = dict(markers)

    def load(self) -> Dict[str, Optional[str]]:
        values: Dict[str, Optional[str]] = {name: None for name in self.markers}
        if not self.path.exists():
            return values

        try:
            content = self.path.read_text(encoding='utf-8')
        except OSError as e:
            logger.error(f"Error reading {self.path}: {str(e)}")
            return values

        for line in content.splitlines():
            parts = _SEPARATOR.split(line)
            if len(parts) < 2 or not parts[1].strip():
                continue
            key, value = parts[0], parts[1].strip()
            for name, marker in self.markers.items():
                if marker in key:
                    values[name] = value
        return values


class ChainedCredentialSource(CredentialSource):
    """First source wins when complete; later sources only fill its gaps."""

    def __init__(self, sources: Sequence[CredentialSource]):
        self.sources = list(sources)

    def load(self) -> Dict[str, Optional[str]]:
        values: Dict[str, Optional[str]] = {}
        for source in self.sources:
            found = source.load()
            for name, value in found.items():
                if value and not values.get(name):
                    values[name] = value
                values.setdefault(name, None)
            if values and all(values.values()):
                break
        return values


def cdn_credential_source(key_file: Union[str, Path], environ: Optional[Mapping[str, str]] = None) -> ChainedCredentialSource:
    return ChainedCredentialSource([
        EnvCredentialSource(CDN_ENV_VARS, environ),
        KeyFileCredentialSource(key_file, CDN_FILE_MARKERS),
    ])


def edge_credential_source(key_file: Union[str, Path], environ: Optional[Mapping[str, str]] = None) -> ChainedCredentialSource:
    return ChainedCredentialSource([
        EnvCredentialSource(EDGE_ENV_VARS, environ),
        KeyFileCredentialSource(key_file, EDGE_FILE_MARKERS),
    ])


def load_cdn_credentials(source: CredentialSource) -> CdnCredentials:
    values = source.load()
    return CdnCredentials(**{name: values.get(name) for name in CDN_ENV_VARS})


def load_edge_credentials(source: CredentialSource) -> EdgeCredentials:
    values = source.load()
    return EdgeCredentials(**{name: values.get(name) for name in EDGE_ENV_VARS})
