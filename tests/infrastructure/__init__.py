"""Shared test support for herdview: compositor, OBS server and chat stand-ins.

mocks/   FakeCompositor, MockObsServer, RecordingTransport
helpers/ slot assertions and polling waits
"""
