from .mqtt import MQTTClient as MQTTClient

__all__ = ["MQTTClient"]
