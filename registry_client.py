#!/usr/bin/env python3
"""
Tile registry client for a MediaWiki wiki running the Tilesheets extension.

The wiki is the authoritative store of which tile sits where: each family
("mod" on the wiki) has a list of sheet sizes, and every tile has a name, an
(x, y, z) position and a numeric id. The composed sheet images are uploaded
as regular wiki files.

Error handling:
- API errors and transport errors raise RegistryError
- Per-tile failures inside an otherwise successful call are returned as a
  list of messages
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import requests

USER_AGENT = 'tilesheets/1.0'


class RegistryError(Exception):
    """An error reported by the registry, with its code and description."""

    def __init__(self, code: str, info: str = ''):
        super().__init__(f"{code}: {info}" if info else code)
        self.code = code
        self.info = info


class RegistryTile(NamedTuple):
    name: str
    x: int
    y: int
    z: int
    id: int


@dataclass
class UploadResult:
    status: str  # 'success', 'warning' or 'error'
    warnings: Dict[str, object] = field(default_factory=dict)
    filekey: Optional[str] = None
    errors: List[str] = field(default_factory=list)


def item_errors(entries) -> List[str]:
    """Collect per-item error messages from an addtiles/deletetiles reply."""
    errors = []
    if not isinstance(entries, list):
        return errors
    for entry in entries:
        if isinstance(entry, dict) and entry.get('error'):
            label = entry.get('name', entry.get('id', '?'))
            errors.append(f"{label}: {entry['error']}")
    return errors


class WikiRegistry:
    def __init__(self, api_url: str, session: Optional[requests.Session] = None, timeout: float = 60):
        self.api_url = api_url
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', USER_AGENT)
        self.timeout = timeout
        self._csrf_token: Optional[str] = None

    # ─── Transport ──────────────────────────────────────────────────────

    def _request(self, method: str, params: Dict, files=None) -> Dict:
        params = dict(params, format='json', formatversion=2)
        try:
            if method == 'GET':
                r = self.session.get(self.api_url, params=params, timeout=self.timeout)
            else:
                r = self.session.post(self.api_url, data=params, files=files, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except requests.RequestException as e:
            raise RegistryError('http', str(e)) from e
        except ValueError as e:
            raise RegistryError('badjson', f"Invalid JSON from {self.api_url}: {e}") from e

        if 'error' in data:
            error = data['error']
            raise RegistryError(error.get('code', 'unknown'), error.get('info', ''))
        return data

    def _get(self, **params) -> Dict:
        return self._request('GET', params)

    def _post(self, files=None, **params) -> Dict:
        params['token'] = self.csrf_token()
        return self._request('POST', params, files=files)

    def login(self, username: str, password: str):
        """Log in with a bot password."""
        data = self._get(action='query', meta='tokens', type='login')
        token = data['query']['tokens']['logintoken']
        data = self._request('POST', {
            'action': 'login',
            'lgname': username,
            'lgpassword': password,
            'lgtoken': token,
        })
        result = data.get('login', {})
        if result.get('result') != 'Success':
            raise RegistryError('login-failed', result.get('reason', str(result)))
        self._csrf_token = None

    def csrf_token(self) -> str:
        if self._csrf_token is None:
            data = self._get(action='query', meta='tokens', type='csrf')
            self._csrf_token = data['query']['tokens']['csrftoken']
        return self._csrf_token

    def _query_all(self, list_name: str, **params) -> List[Dict]:
        """Run a list query, following continuation until exhausted."""
        results = []
        cont: Dict = {}
        while True:
            data = self._get(action='query', list=list_name, **params, **cont)
            results.extend(data.get('query', {}).get(list_name, []))
            if 'continue' not in data:
                return results
            cont = data['continue']

    # ─── Registry interface ─────────────────────────────────────────────

    def list_families(self) -> List[Dict]:
        sheets = self._query_all('tilesheets', tslimit='max')
        return [{'name': s['mod'], 'sizes': [int(size) for size in s['sizes']]} for s in sheets]

    def create_family(self, name: str, sizes: Sequence[int]):
        self._post(action='createsheet', tsmod=name, tssizes='|'.join(str(s) for s in sizes))

    def list_tiles(self, family: str) -> List[RegistryTile]:
        tiles = self._query_all('tiles', tsmod=family, tslimit='max')
        return [
            RegistryTile(t['name'], int(t['x']), int(t['y']), int(t.get('z', 0)), int(t['id']))
            for t in tiles
        ]

    def add_tiles(self, family: str, tiles: Sequence[Tuple[int, int, int, str]]) -> List[str]:
        entries = '|'.join(f"{x} {y} {z} {name}" for x, y, z, name in tiles)
        data = self._post(action='addtiles', tsmod=family, tsimport=entries)
        return item_errors(data.get('addtiles'))

    def delete_tiles(self, ids: Sequence[int]) -> List[str]:
        data = self._post(action='deletetiles', tsids='|'.join(str(i) for i in ids))
        return item_errors(data.get('deletetiles'))

    def download_asset(self, name: str) -> Optional[bytes]:
        data = self._get(action='query', titles=f"File:{name}", prop='imageinfo', iiprop='url')
        pages = data.get('query', {}).get('pages', [])
        if not pages or pages[0].get('missing') or not pages[0].get('imageinfo'):
            return None
        url = pages[0]['imageinfo'][0]['url']
        try:
            r = self.session.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise RegistryError('http', f"Failed to download {name}: {e}") from e
        return r.content

    def upload_asset(self, name: str, data: Optional[bytes], comment: str,
                     filekey: Optional[str] = None, ignore_warnings: bool = False) -> UploadResult:
        """Upload a file, or resume a stashed upload with its filekey."""
        params = {'action': 'upload', 'filename': name, 'comment': comment}
        files = None
        if filekey is not None:
            params['filekey'] = filekey
        else:
            files = {'file': (name, data, 'image/png')}
        if ignore_warnings:
            params['ignorewarnings'] = 1

        try:
            reply = self._post(files=files, **params)
        except RegistryError as e:
            return UploadResult('error', errors=[str(e)])
        return classify_upload(reply.get('upload'))


def classify_upload(upload) -> UploadResult:
    """Turn an upload reply into an UploadResult.

    Raises:
        RuntimeError: If the reply has a shape the client does not understand
    """
    if not isinstance(upload, dict):
        raise RuntimeError(f"Unexpected upload reply: {upload!r}")
    result = upload.get('result')
    if result == 'Success':
        return UploadResult('success')
    if result == 'Warning':
        return UploadResult('warning', warnings=dict(upload.get('warnings', {})),
                            filekey=upload.get('filekey'))
    if result == 'Failure':
        return UploadResult('error', errors=[str(upload.get('error', upload))])
    raise RuntimeError(f"Unexpected upload result: {result!r}")


def registry_from_env(api_url: Optional[str] = None, username: Optional[str] = None,
                      password: Optional[str] = None) -> WikiRegistry:
    """Create and log in a WikiRegistry, falling back to environment variables.

    Raises:
        RuntimeError: If the API URL or credentials are not configured
    """
    api_url = api_url or os.environ.get('TILESHEETS_API_URL', '')
    username = username or os.environ.get('TILESHEETS_USERNAME', '')
    password = password or os.environ.get('TILESHEETS_PASSWORD', '')
    if not api_url:
        raise RuntimeError('TILESHEETS_API_URL environment variable not set')
    if not username or not password:
        raise RuntimeError('TILESHEETS_USERNAME and TILESHEETS_PASSWORD must be set')

    registry = WikiRegistry(api_url)
    registry.login(username, password)
    return registry
