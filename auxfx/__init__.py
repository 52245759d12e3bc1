"""Auxiliary-bus audio effects (delay, chorus, two reverbs) with sound-RAM and voice state models."""

__version__ = "0.1.0"
__all__ = ["fxbase", "aram", "delay", "hardware", "creverb", "reverb_hi", "chorus"]