"""
Houses the tests for the REST api layer of the program. This layer is what manages the external API, and is
what external interface should use to speak through when communicating with the rest of the system.

The tests are set up primarily to assert that
the formatting of the responses remains stable,
and that the system returns the expected errors (and status codes)
when interacted with incorrectly.
"""
