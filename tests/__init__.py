# SPDX-License-Identifier: Apache-2.0
"""
milvus_sdk tests

Unit tests for the client core (status, retry, progress polling), the typed
field containers, wire marshaling and the client layer. Client tests run
against the scripted stub in `tests/mock`; no Milvus server is needed.
"""
