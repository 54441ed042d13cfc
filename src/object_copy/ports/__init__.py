"""Ports - interfaces between the copy engine and the outside world."""
