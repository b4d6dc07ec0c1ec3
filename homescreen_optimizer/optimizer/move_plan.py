"""Move plan: the manual moves between two layouts."""

from typing import Iterable, List

from homescreen_optimizer.schema import LayoutAssignment, MoveStep


class MovePlanBuilder:
    def build_moves(
        self,
        current: Iterable[LayoutAssignment],
        target: Iterable[LayoutAssignment],
    ) -> List[MoveStep]:
        """One step per app whose target slot differs, in target order.

        Apps missing from the current layout have nowhere to move from and
        are skipped.
        """
        current_by_app = {a.app_id: a.slot for a in current}
        steps = []
        for desired in target:
            from_slot = current_by_app.get(desired.app_id)
            if from_slot is None or from_slot == desired.slot:
                continue
            steps.append(
                MoveStep(app_id=desired.app_id, from_slot=from_slot, to_slot=desired.slot)
            )
        return steps
