"""Tests for the MagicHome LAN integration."""
