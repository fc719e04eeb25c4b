"""
SceneCraft Core Module
Scene planning, workflow orchestration, output enforcement and the session entry point.
"""
