from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict

from champion_catalog import Champion
from champ_select import ChampSelectAction, RunePage
from console_log import TeeLog
from lcu_client import LCUError


def action_body(action: ChampSelectAction, cell_id: int, champion: Champion, kind: str) -> Dict[str, Any]:
    return {
        "actorCellId": int(cell_id),
        "championId": int(champion.id),
        "completed": True,
        "id": int(action.action_id),
        "isAllyAction": bool(action.is_ally_action),
        "type": kind,
    }


class MutationExecutor:
    """
    Issues the state-changing LCU calls, one at a time, from the loop thread.

    Errors from the client propagate; the loop decides whether the next poll
    retries. cooldown() follows every successful submission.
    """

    def __init__(
        self,
        client,
        log: TeeLog,
        cooldown_sec: float = 10.0,
        check_pause_sec: float = 0.2,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self.client = client
        self.log = log
        self.cooldown_sec = cooldown_sec
        self.check_pause_sec = check_pause_sec
        self.sleep = sleep

    def accept_match(self):
        self.client.accept_ready_check()
        self.log.line("ACCEPT", "match found, accepted")

    def submit_ban(self, action: ChampSelectAction, cell_id: int, champion: Champion):
        self.client.patch_action(action.action_id, action_body(action, cell_id, champion, "ban"))
        self.log.line("BAN", f"{champion.name} ({champion.id}) action={action.action_id}")

    def submit_pick(self, action: ChampSelectAction, cell_id: int, champion: Champion):
        self.client.patch_action(action.action_id, action_body(action, cell_id, champion, "pick"))
        self.log.line("PICK", f"{champion.name} ({champion.id}) action={action.action_id}")

    def swap_rune_page(self, template: RunePage, replacement: RunePage):
        self.client.delete_rune_page(template.id)
        try:
            self.client.create_rune_page(replacement.to_create_body())
        except LCUError:
            # the template is already deleted at this point
            self._restore_page(template)
            raise
        self.log.line("RUNES", f"replaced page '{template.name}' ({template.id}) with '{replacement.name}'")

    def _restore_page(self, template: RunePage):
        body = template.to_create_body()
        try:
            self.client.create_rune_page(body)
        except LCUError:
            self.log.error(
                f"rune page '{template.name}' was deleted and could not be recreated; "
                f"rebuild it from: {json.dumps(body)}"
            )
            raise
        self.log.warn(f"rune page '{template.name}' restored after a failed swap")

    def cooldown(self):
        self.sleep(self.cooldown_sec)

    def pause_between_checks(self):
        self.sleep(self.check_pause_sec)
