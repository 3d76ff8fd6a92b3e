"""
Deployable components. Each is stored as code by its ``python_ref``.
"""
from .collection import TokenCollection
from .manager import PoapManager
from .poap import Poap

COMPONENTS = {
    "collection": "poap_cvm.contracts.collection.TokenCollection",
    "poap": "poap_cvm.contracts.poap.Poap",
    "manager": "poap_cvm.contracts.manager.PoapManager",
}

__all__ = ["COMPONENTS", "Poap", "PoapManager", "TokenCollection"]
