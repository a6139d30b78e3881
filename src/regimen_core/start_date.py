"""Start-date edit transaction.

Moving the treatment start date replaces the anchor, drops every ledger entry
before the new anchor and records the new anchor as taken. The policy follows
the anchor (see ``SchedulePolicy.rebased``), so days between a new, earlier
start and the old one are classified by the first era's rule. The new
regimen is built in one step, so callers either get all of these changes or,
if building it fails, keep their previous regimen untouched.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from .dates import as_day
from .ledger import DOSE_TAKEN, Regimen

logger = logging.getLogger(__name__)


def set_start_date(regimen: Regimen, new_date: date) -> Regimen:
    new_date = as_day(new_date)
    policy = regimen.policy.rebased(regimen.start_date, new_date)
    doses = {day: status for day, status in regimen.doses.items() if day >= new_date}
    pruned = len(regimen.doses) - len(doses)
    # The anchor is always taken, whatever the policy says about that day.
    doses[new_date] = DOSE_TAKEN

    logger.info(
        "Treatment start date moved",
        extra={
            "regimen_previous_start_date": regimen.start_date,
            "regimen_start_date": new_date,
            "regimen_pruned_entries": pruned,
        },
    )
    return replace(regimen, start_date=new_date, policy=policy, doses=doses)
