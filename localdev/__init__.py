"""localdev - local k3d cluster harness with ArgoCD and a sample app"""

__version__ = "0.1.0"
