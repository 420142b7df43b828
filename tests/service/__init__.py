"""
Houses the tests for the service layer of the program. This layer is what manages the internal API, and is
what any interface should use to speak through when communicating with the rest of the system.

Asynchronous tests (those using "await") are run by the aiohttp pytest plugin on its ``loop`` fixture,
and each test gets a fresh in memory database.
"""
