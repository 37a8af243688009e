from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
import urllib3

from champ_select import PayloadError, PhaseValue, phase_from_gameflow_session

urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


class LCUError(Exception):
    pass


class LCUTransportError(LCUError):
    """Client unreachable: closed, restarting, or the call timed out."""


class LCUHttpError(LCUError):
    def __init__(self, status: int, method: str, path: str, text: str = ""):
        super().__init__(f"{status} {method} {path}: {text[:200]}")
        self.status = status
        self.method = method
        self.path = path
        self.text = text


class LCUAuthError(LCUHttpError):
    pass


@dataclass
class LCUConn:
    port: int
    password: str
    protocol: str = "https"
    host: str = "127.0.0.1"

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"

    @property
    def auth(self) -> Tuple[str, str]:
        return ("riot", self.password)


def read_lockfile(path: str) -> LCUConn:
    """
    Riot lockfile format:
      name:pid:port:password:protocol
    """
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        raw = f.read().strip()
    parts = raw.split(":")
    if len(parts) < 5:
        raise ValueError(f"Invalid lockfile format: {raw}")
    return LCUConn(port=int(parts[2]), password=parts[3], protocol=parts[4])


def guess_lockfile_paths(explicit: Optional[str] = None) -> List[str]:
    candidates: List[str] = []
    if explicit:
        candidates.append(explicit)
    env_path = os.getenv("LOL_LOCKFILE")
    if env_path:
        candidates.append(env_path)

    candidates.extend([
        "C:/Riot Games/League of Legends/lockfile",
        "C:/Program Files/Riot Games/League of Legends/lockfile",
        "C:/Program Files (x86)/Riot Games/League of Legends/lockfile",
        "/Applications/League of Legends.app/Contents/LoL/lockfile",
    ])

    seen = set()
    uniq = []
    for p in candidates:
        if not p or p in seen:
            continue
        seen.add(p)
        uniq.append(p)
    return uniq


def find_lockfile(explicit: Optional[str] = None) -> Optional[str]:
    for p in guess_lockfile_paths(explicit):
        if os.path.exists(p):
            return p
    return None


class LCUClient:
    def __init__(self, conn: LCUConn, timeout: float = 2.0, lockfile_path: Optional[str] = None):
        self.conn = conn
        self.timeout = timeout
        self.lockfile_path = lockfile_path
        self._session = self._new_session(conn)

    @staticmethod
    def _new_session(conn: LCUConn) -> requests.Session:
        s = requests.Session()
        s.verify = False
        s.auth = conn.auth
        s.headers.update({"Accept": "application/json"})
        return s

    @classmethod
    def from_lockfile(cls, path: str, timeout: float = 2.0) -> "LCUClient":
        return cls(read_lockfile(path), timeout=timeout, lockfile_path=path)

    def refresh_credentials(self) -> bool:
        """
        Re-read the lockfile. Returns True when the port/password rotated and
        the HTTP session was rebuilt.
        """
        if not self.lockfile_path or not os.path.exists(self.lockfile_path):
            return False
        try:
            conn = read_lockfile(self.lockfile_path)
        except (OSError, ValueError):
            return False
        if conn == self.conn:
            return False
        self._session.close()
        self.conn = conn
        self._session = self._new_session(conn)
        return True

    # ---- raw ----
    def _request(self, method: str, path: str, body: Any = None) -> Any:
        url = self.conn.base_url + path
        try:
            if body is None:
                r = self._session.request(method, url, timeout=self.timeout)
            else:
                r = self._session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise LCUTransportError(f"{method} {path}: {e}") from e

        if r.status_code in (401, 403):
            raise LCUAuthError(r.status_code, method, path, r.text)
        if r.status_code >= 400:
            raise LCUHttpError(r.status_code, method, path, r.text)
        if not r.text:
            return None
        try:
            return r.json()
        except ValueError:
            return r.text

    def ping(self) -> Tuple[bool, str]:
        try:
            phase = self.get_gameflow_phase()
            return True, f"OK (phase={phase})"
        except LCUError as e:
            return False, str(e)

    # ---- gameflow ----
    def get_gameflow_session(self) -> Any:
        return self._request("GET", "/lol-gameflow/v1/session")

    def get_gameflow_phase(self) -> PhaseValue:
        try:
            obj = self.get_gameflow_session()
        except LCUHttpError as e:
            # no session object outside of any queue/lobby
            if e.status == 404:
                return PhaseValue.parse(None)
            raise
        return phase_from_gameflow_session(obj)

    def accept_ready_check(self) -> None:
        self._request("POST", "/lol-matchmaking/v1/ready-check/accept")

    # ---- champ select ----
    def get_champ_select_session(self) -> Any:
        return self._request("GET", "/lol-champ-select/v1/session")

    def get_grid_champion(self, champion_id: int) -> Any:
        return self._request("GET", f"/lol-champ-select/v1/grid-champions/{int(champion_id)}")

    def is_champion_available(self, champion_id: int) -> bool:
        obj = self.get_grid_champion(champion_id)
        if not isinstance(obj, dict):
            raise PayloadError(f"grid champion {champion_id} is not an object")
        status = obj.get("selectionStatus") or {}
        return not bool(status.get("pickedByOtherOrBanned", False))

    def patch_action(self, action_id: int, body: Dict[str, Any]) -> Any:
        return self._request("PATCH", f"/lol-champ-select/v1/session/actions/{int(action_id)}", body)

    # ---- perks ----
    def list_rune_pages(self) -> Any:
        return self._request("GET", "/lol-perks/v1/pages")

    def create_rune_page(self, body: Dict[str, Any]) -> Any:
        return self._request("POST", "/lol-perks/v1/pages", body)

    def delete_rune_page(self, page_id: int) -> None:
        self._request("DELETE", f"/lol-perks/v1/pages/{int(page_id)}")
