# --- Build descriptor (Maven pom.xml) ----------------------------------------
import logging
import os
import xml.etree.ElementTree as ET

from call_chain.src.call_chain.config import settings

logger = logging.getLogger(__name__)


def _local(tag: str) -> str:
    """Strips the '{namespace}' prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _child_text(element, name: str) -> str:
    for child in element:
        if _local(child.tag) == name:
            return (child.text or "").strip()
    return ""


def _child(element, name: str):
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def read_group_id(root_dir: str) -> str:
    """
    Returns the project's groupId from the build descriptor at root_dir, or ""
    when there is none. A project without its own groupId inherits its parent's.
    """
    pom_path = os.path.join(root_dir, settings.BUILD_DESCRIPTOR)
    try:
        project = ET.parse(pom_path).getroot()
    except FileNotFoundError:
        logger.info(f"No {settings.BUILD_DESCRIPTOR} under {root_dir}, not a maven project; scanning without namespace filter")
        return ""
    except (ET.ParseError, OSError) as e:
        logger.info(f"Could not read {pom_path}: {e}; scanning without namespace filter")
        return ""

    group_id = _child_text(project, "groupId")
    if not group_id:
        parent = _child(project, "parent")
        if parent is not None:
            group_id = _child_text(parent, "groupId")
    return group_id


def namespace_prefix(root_dir: str) -> str:
    """groupId in internal-name form: 'com.acme' -> 'com/acme'."""
    return read_group_id(root_dir).replace(".", "/")
