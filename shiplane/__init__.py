"""shiplane: release lanes for an iOS app, driven from the command line."""

__version__ = "0.1.0"
