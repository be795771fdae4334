from typing import Dict, Any, Type
from pydantic import BaseModel
from repwatch.core.logging_config import get_logger

logger = get_logger("drift_detection")

def detect_drift(payload: Dict[str, Any], model: Type[BaseModel], source_name: str) -> bool:
    """
    Compares the keys of a raw payload against the fields of the schema it is parsed into.
    Logs a warning when the node software adds or drops fields. Returns True on drift.
    """
    if not isinstance(payload, dict):
        logger.warning("schema_drift_detected", source=source_name, schema=model.__name__, payload_type=type(payload).__name__)
        return True

    incoming_keys = set(payload.keys())
    expected_keys = {field.alias or name for name, field in model.model_fields.items()}
    required_keys = {field.alias or name for name, field in model.model_fields.items() if field.is_required()}

    unexpected = sorted(incoming_keys - expected_keys)
    missing = sorted(required_keys - incoming_keys)

    if unexpected or missing:
        logger.warning(
            "schema_drift_detected",
            source=source_name,
            schema=model.__name__,
            unexpected_keys=unexpected,
            missing_keys=missing,
        )
        return True
    return False
