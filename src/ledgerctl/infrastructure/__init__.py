"""Infrastructure layer — file reading, include resolution, workspace.

This layer depends on the domain layer, stdlib and networkx. It must never
import from services, commands, or output.
"""
