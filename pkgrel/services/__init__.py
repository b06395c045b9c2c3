"""Application services for pkgrel.

Services implement the release logic, coordinating between the domain layer
(core/, release/) and infrastructure (platform/, git/).
"""
