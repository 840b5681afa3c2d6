"""
yashell - desktop shell for yaLLMa3.

Launches the yaLLMa3API sidecar next to the host UI, keeps its output in
server.log and makes sure the process dies with the host.
"""

__version__ = "0.1.0"
