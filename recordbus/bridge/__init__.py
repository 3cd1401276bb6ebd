"""Recordbus bridges — adapters to the host record store and the MQTT broker.

Each module isolates one external system behind the narrow interface the
core depends on:

- ``mqtt``: ``MessageBusClient`` over paho-mqtt
- ``directus``: ``RecordLookup`` over the Directus REST API, and hook
  payload parsing
- ``hooks``: the host's action-hook registration surface
"""
