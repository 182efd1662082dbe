"""
Services Layer

Competition engine:
- Pure generators (round_robin, bracket, group_assignment, knockout_seeding,
  standings) take in-memory data and return planned matches or tables.
  No sessions, no HTTP objects.
- stage_controller drives phase transitions through SqlTournamentStore and
  owns the transaction boundary.
"""
