# overlay/layouts.py
"""
Layout-velger.
Holder listen over spill-layouts ('gameLayouts') og gjeldende layout ('currentGameLayout').
Bytter layout på manuell kommando (changeGameLayout) eller når aktivt løp endres.
Oppslagsfeil logges, aldri kastes: forrige layout blir stående.
"""
from __future__ import annotations
import copy
import logging
from typing import Any, Callable, Dict, List, Optional

from .messages import MessageBus
from .replicants import ReplicantStore
from .storage import sanitize_layouts

log = logging.getLogger(__name__)

LAYOUTS = "gameLayouts"
CURRENT_LAYOUT = "currentGameLayout"
ACTIVE_RUN = "runDataActiveRun"
CHANGE_LAYOUT_MESSAGE = "changeGameLayout"

# name: navn brukt i GUI (f.eks. override-panelet)
# code: navnet brukt alle andre steder, inkludert CSS-filen
DEFAULT_LAYOUTS: List[Dict[str, str]] = [
    {"name": "4:3 1 Player", "code": "4_3"},
    {"name": "4:3 2 Player", "code": "4_3_2p"},
    {"name": "4:3 3 Player", "code": "4_3_3p"},
    {"name": "4:3 4 Player (Currently unused)", "code": "4_3-4p"},
    {"name": "16:9 1 Player", "code": "16_9"},
    {"name": "16:9 2 Player (Currently unused)", "code": "16_9_2p"},
    {"name": "16:9 3 Player", "code": "16_9_3p"},
    {"name": "16:9 4 Player (Currently unused)", "code": "16_9_4p"},
    {"name": "3:2 1 Player", "code": "3_2"},
    {"name": "9:16 2 Player", "code": "9_16_2p"},
]


def build_layouts(extra: Any = None) -> List[Dict[str, str]]:
    """Standardlisten + gyldige ekstra layouts fra config, lagt til på slutten."""
    base = copy.deepcopy(DEFAULT_LAYOUTS)
    base.extend(sanitize_layouts(extra, taken=[l["code"] for l in base]))
    return base


class LayoutSelector:
    def __init__(
        self,
        store: ReplicantStore,
        layouts: List[Dict[str, str]],
        bus: Optional[MessageBus] = None,
    ) -> None:
        if not layouts:
            raise ValueError("minst én layout må være konfigurert")
        self.store = store
        self._layouts: List[Dict[str, str]] = copy.deepcopy(layouts)
        store.declare(LAYOUTS, self._layouts)
        store.declare(CURRENT_LAYOUT, self._layouts[0])
        store.declare(ACTIVE_RUN, None)
        store.on_change(ACTIVE_RUN, self.on_active_run_changed)
        if bus is not None:
            bus.listen_for(CHANGE_LAYOUT_MESSAGE, self.on_external_command)

    @property
    def layouts(self) -> List[Dict[str, str]]:
        return copy.deepcopy(self._layouts)

    @property
    def current(self) -> Optional[Dict[str, str]]:
        return self.store.get(CURRENT_LAYOUT)

    def find_layout(self, code: Any) -> Optional[Dict[str, str]]:
        if not code or not isinstance(code, str):
            return None
        wanted = code.lower()
        for layout in self._layouts:
            if layout["code"].lower() == wanted:
                return layout
        return None

    def change_layout(
        self, info: Dict[str, str], callback: Optional[Callable[[], None]] = None
    ) -> None:
        # Kopi: gjeldende layout skal aldri dele objekt med listen
        self.store.set(CURRENT_LAYOUT, copy.deepcopy(info))
        log.info("Game Layout changed to %s.", info.get("name"))
        if callback:
            callback()

    def on_external_command(
        self, code: Any, callback: Optional[Callable[[], None]] = None
    ) -> None:
        info = self.find_layout(code)
        if info:
            self.change_layout(info, callback)
        else:
            log.error("Got bad changeGameLayout event code %s", code)

    def on_active_run_changed(self, new_run: Any, old_run: Any) -> None:
        if not new_run:
            return
        # Samme løp: ikke rør layouten (beskytter manuell overstyring når løpsdata redigeres)
        if old_run and _run_id(new_run) == _run_id(old_run):
            log.debug("Run ID %s did not change, not updating layout", _run_id(new_run))
            return

        custom = new_run.get("customData") if isinstance(new_run, dict) else None
        code = custom.get("layout") if isinstance(custom, dict) else None
        if not code:
            log.warning("Run ID %s does not have custom data for layout", _run_id(new_run))
            return

        info = self.find_layout(code)
        if not info:
            log.error("No layout found for run ID %s, layout %s", _run_id(new_run), code)
            return
        current = self.current
        if not current or info["code"] != current.get("code"):
            self.change_layout(info)
        else:
            log.debug(
                "Current layout %s matches new run ID %s, not changing",
                info["code"],
                _run_id(new_run),
            )


def _run_id(run: Any) -> Any:
    return run.get("runID") if isinstance(run, dict) else None
