# lcu_probe.py
import time

from champ_select import GameflowPhase, ChampSelectSnapshot, resolve_actions
from env_loader import load_project_env
from lcu_client import LCUClient, find_lockfile


def main():
    load_project_env()
    path = find_lockfile()
    if not path:
        print("lockfile not found (set LOL_LOCKFILE)")
        return
    lcu = LCUClient.from_lockfile(path)
    ok, msg = lcu.ping()
    print("PING:", ok, msg)
    for i in range(10):
        phase = lcu.get_gameflow_phase()
        line = f"[{i}] phase={phase.raw}"
        if phase.phase is GameflowPhase.CHAMP_SELECT:
            snap = ChampSelectSnapshot.from_payload(lcu.get_champ_select_session())
            ban, pick = resolve_actions(snap)
            line += (
                f" cell={snap.local_player_cell_id} timer={snap.timer_phase}"
                f" ban(id={ban.action_id} open={ban.is_open} done={ban.completed})"
                f" pick(id={pick.action_id} open={pick.is_open} done={pick.completed})"
            )
        print(line)
        time.sleep(1)


if __name__ == "__main__":
    main()
