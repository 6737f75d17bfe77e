"""
bussie-deploy - build, ship and restart the mijn_bussie containers.

Root package of the deployment tool.
"""

__version__ = "1.0.0"
__license__ = "MIT"


# Lazy imports so the CLI does not pull in paramiko up front
def __getattr__(name):
    if name == "DeployConfig":
        from .config import DeployConfig
        return DeployConfig
    elif name == "load_deploy_config":
        from .config import load_deploy_config
        return load_deploy_config
    elif name == "deploy":
        from .pipeline import deploy
        return deploy
    elif name == "Selection":
        from .pipeline import Selection
        return Selection
    raise AttributeError(f"module 'bussie_deploy' has no attribute '{name}'")


__all__ = [
    "DeployConfig",
    "Selection",
    "deploy",
    "load_deploy_config",
]
