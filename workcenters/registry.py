"""작업장 이름 -> 상태 머신 클래스 매핑"""

from typing import Optional, Type

from workcenters.base import WorkCenterMachine
from workcenters.fitup import FitupMachine
from workcenters.hydro import HydroMachine
from workcenters.inspection import LongSeamInspectionMachine, RoundSeamInspectionMachine
from workcenters.nameplate import NameplateMachine
from workcenters.queues import HeadsQueueMachine, MaterialQueueMachine, XrayQueueMachine
from workcenters.rolls import RollsMachine
from workcenters.seams import LongSeamMachine, RoundSeamMachine


FITUP_NAMES = ('fitup', 'fit-up', 'fit up')

# (이름에 포함될 문자열들, 머신) - 위에서부터 처음 일치하는 항목을 사용합니다.
ROUTES = (
    ((('rolls material', 'rolls mat'),), MaterialQueueMachine),
    ((('rolls',),), RollsMachine),
    ((('long seam insp',),), LongSeamInspectionMachine),
    ((('long seam',),), LongSeamMachine),
    ((FITUP_NAMES, ('queue',)), HeadsQueueMachine),
    ((FITUP_NAMES,), FitupMachine),
    ((('round seam insp',),), RoundSeamInspectionMachine),
    ((('round seam',),), RoundSeamMachine),
    ((('rt',), ('xray',)), XrayQueueMachine),
    ((('rt x-ray', 'real time'),), XrayQueueMachine),
    ((('nameplate', 'data plate'),), NameplateMachine),
    ((('hydro',),), HydroMachine),
)


def machine_class_for(work_center_name: str) -> Optional[Type[WorkCenterMachine]]:
    """작업장 이름으로 상태 머신 클래스를 찾습니다. 대소문자는 구분하지 않습니다.

    각 조건은 '후보 문자열 중 하나가 포함됨' 이며, 조건이 여러 개면 모두 만족해야 합니다.
    """
    name = (work_center_name or "").lower()
    for conditions, machine_class in ROUTES:
        if all(any(term in name for term in terms) for terms in conditions):
            return machine_class
    return None


def create_machine(work_center_name: str, coordinator, api, runner, scheduler=None,
                   options: Optional[dict] = None) -> Optional[WorkCenterMachine]:
    machine_class = machine_class_for(work_center_name)
    if machine_class is None:
        return None
    return machine_class(coordinator, api, runner, scheduler, options)
