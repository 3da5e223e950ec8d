"""
HLTB client application package.

Layers:

  app/exceptions.py: error hierarchy shared by every layer.
  app/services/: key extraction, credential caching and duration logic.

``HLTBClient`` (in ``hltb_client.py``) is the integration point: it owns a
``CredentialPair``, wires a ``KeyExtractor`` into a ``CredentialCache`` and
runs the search fallback logic on top of them.
"""
