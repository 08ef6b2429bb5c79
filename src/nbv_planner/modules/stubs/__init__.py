"""Simulated collaborators for tests and demo runs."""

from nbv_planner.modules.stubs.reconstruction import SimulatedReconstruction
from nbv_planner.modules.stubs.robot import SimulatedRobot
from nbv_planner.modules.stubs.scene import SimulatedScene, yaw_to_quaternion

__all__ = [
    "SimulatedReconstruction",
    "SimulatedRobot",
    "SimulatedScene",
    "yaw_to_quaternion",
]
