# missions/permissions.py
from typing import NamedTuple

from .exceptions import Unauthorized


class MissionCapabilities(NamedTuple):
    is_creator: bool
    is_collaborator: bool
    is_admin: bool

    @property
    def is_team(self):
        """Creator, collaborator or admin: may run the mission's coordinator actions"""
        return self.is_creator or self.is_collaborator or self.is_admin


def mission_capabilities(actor, mission):
    """What the actor is with respect to this mission."""
    if actor is None:
        return MissionCapabilities(False, False, False)
    is_creator = mission.created_by_id == actor.pk
    is_collaborator = not is_creator and mission.collaborators.filter(pk=actor.pk).exists()
    return MissionCapabilities(is_creator, is_collaborator, bool(getattr(actor, 'is_admin', False)))


def require_mission_team(actor, mission, action='perform this action'):
    capabilities = mission_capabilities(actor, mission)
    if not capabilities.is_team:
        raise Unauthorized(f'Unauthorized: only the mission team can {action}.')
    return capabilities
