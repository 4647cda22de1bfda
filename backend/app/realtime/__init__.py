"""Real-time delivery module.

Components:
    - PresenceRegistry: connections, personal rooms and joined rooms.
    - RoomHub: emits events to rooms, users and single connections.
    - DeliveryEngine: persist-then-broadcast plus live/stored notification choice.
    - TypingRelay: ephemeral start/stop typing signals.
"""
