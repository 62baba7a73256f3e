from fastapi import Request

from core.autopilot_engine import AutoPilotEngine


def get_engine(request: Request) -> AutoPilotEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise RuntimeError("AutoPilot engine not initialized. Check app lifespan startup.")
    return engine
