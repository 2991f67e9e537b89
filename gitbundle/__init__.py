"""gitbundle - Git bundle packaging for air-gapped environments.

Exports a tagged baseline bundle, incremental update bundles on top of it,
and the shell scripts used to verify and deploy them on the other side.
"""

__version__ = "2.0.0"
__author__ = "gitbundle contributors"
