"""Merge per-unit results into the final, ordered assignment list."""

from typing import Dict, List, Sequence

from .models import Account, Assignment, UnitResult, WorkUnit


class Aggregator:
    """Collects unit results and emits them in work-unit order.

    Units may complete in any order. The output always follows the order in
    which the units were built: accounts in enumeration order, then permission
    sets in enumeration order, preserving the row order inside each unit.
    """

    def __init__(self, accounts: Sequence[Account], units: Sequence[WorkUnit]):
        self._account_names: Dict[str, str] = {account.id: account.name for account in accounts}
        self._units = list(units)
        self._positions = {unit: index for index, unit in enumerate(self._units)}
        self._results: Dict[int, UnitResult] = {}

    def add(self, result: UnitResult) -> None:
        """Record the result of one unit.

        Raises:
            ValueError: If the unit is unknown or was already recorded
        """
        position = self._positions.get(result.unit)
        if position is None:
            raise ValueError(f"Unknown work unit: {result.unit.label}")
        if position in self._results:
            raise ValueError(f"Duplicate result for work unit: {result.unit.label}")
        self._results[position] = result

    def add_all(self, results: Sequence[UnitResult]) -> None:
        for result in results:
            self.add(result)

    def assignments(self) -> List[Assignment]:
        """Return every recorded row with the account name taken from the account table."""
        rows: List[Assignment] = []
        for position in sorted(self._results):
            for assignment in self._results[position].assignments:
                assignment.account_name = self._account_names.get(
                    assignment.account_id, assignment.account_name
                )
                rows.append(assignment)
        return rows

    def statistics(self) -> Dict[str, int]:
        rows = self.assignments()
        group_rows = sum(1 for row in rows if row.group_name is not None)
        return {
            "units_recorded": len(self._results),
            "assignments": len(rows),
            "direct_assignments": len(rows) - group_rows,
            "group_assignments": group_rows,
            "unique_users": len({row.username for row in rows}),
        }
