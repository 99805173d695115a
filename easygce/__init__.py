"""easygce — provision, diagnose and repair a remote-desktop VM on GCE."""

__version__ = "0.1.0"
