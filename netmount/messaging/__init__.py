"""Messaging package"""

from netmount.messaging.rabbitmq import RabbitMQServer

__all__ = ['RabbitMQServer']
