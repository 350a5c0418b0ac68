"""Metaclass letting QObject subclasses implement ABC contracts."""

from abc import ABCMeta

from PyQt6.QtCore import QObject

# Order matters: Qt's metaclass first so sip wraps the class, ABCMeta for abstract checks
_QtMetaclass = type(QObject)


class PyQtWidgetMeta(_QtMetaclass, ABCMeta):
    """Metaclass for Qt objects that need ABC support."""
    pass
