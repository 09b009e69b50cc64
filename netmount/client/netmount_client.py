"""netmount RPC client"""

import json
import time
import uuid
from typing import Any, Dict, Optional

import pika

from netmount.messaging.rabbitmq import connection_parameters, safe_url
from netmount.models.schemas import ConnectionDescriptor
from netmount.utils.exceptions import MessagingException
from netmount.utils.logger import get_logger

LOG = get_logger(__name__)


class NetMountClient:
    """
    Synchronous client for a netmount server.

    Each call publishes a request on the server's queue and blocks until
    the reply with the matching correlation id arrives.
    """

    def __init__(self, config):
        self.config = config
        self.queue_name = config.rabbitmq_queue
        self.connection = None
        self.channel = None
        self.callback_queue = None
        self.response = None
        self.corr_id = None

    def _connect(self):
        """Establish connection to RabbitMQ"""
        if self.connection and not self.connection.is_closed:
            return
        try:
            self.connection = pika.BlockingConnection(connection_parameters(self.config))
            self.channel = self.connection.channel()
            result = self.channel.queue_declare(queue='', exclusive=True)
            self.callback_queue = result.method.queue
            self.channel.basic_consume(
                queue=self.callback_queue,
                on_message_callback=self._on_response,
                auto_ack=True,
            )
        except pika.exceptions.AMQPError as e:
            raise MessagingException(
                f"Failed to connect to RabbitMQ at {safe_url(self.config.rabbitmq_url)}: {e}"
            )
        LOG.debug(f"Connected to RabbitMQ, sending to {self.queue_name}")

    def _on_response(self, ch, method, props, body):
        """Handle RPC response"""
        if self.corr_id == props.correlation_id:
            self.response = json.loads(body)

    def call(self, request: Dict[str, Any], timeout: Optional[int] = None) -> Dict[str, Any]:
        """
        Send a request and wait for the response.

        Args:
            request: Control request dictionary
            timeout: Seconds to wait (defaults to request_timeout)

        Returns:
            Response envelope from the server

        Raises:
            TimeoutError: if no reply arrives in time
        """
        self._connect()
        timeout = timeout or self.config.request_timeout
        self.response = None
        self.corr_id = str(uuid.uuid4())

        self.channel.basic_publish(
            exchange='',
            routing_key=self.queue_name,
            properties=pika.BasicProperties(
                reply_to=self.callback_queue,
                correlation_id=self.corr_id,
            ),
            body=json.dumps(request),
        )
        LOG.info(f"Sent {request.get('operation')} request to {self.queue_name}")

        start_time = time.time()
        while self.response is None:
            self.connection.process_data_events(time_limit=1)
            if time.time() - start_time > timeout:
                raise TimeoutError(f"Request timed out after {timeout}s")
        return self.response

    def mount(self, descriptor: ConnectionDescriptor) -> Dict[str, Any]:
        return self.call({'operation': 'mount', 'connection': descriptor.to_dict()})

    def mount_saved(self, name: str) -> Dict[str, Any]:
        return self.call({'operation': 'mount', 'name': name})

    def unmount(self, mount_point: str) -> Dict[str, Any]:
        return self.call({'operation': 'unmount', 'mount_point': mount_point})

    def list_mounts(self) -> Dict[str, Any]:
        return self.call({'operation': 'list_mounts'})

    def is_mounted(self, mount_point: str) -> Dict[str, Any]:
        return self.call({'operation': 'is_mounted', 'mount_point': mount_point})

    def reconcile(self, prune: bool = True) -> Dict[str, Any]:
        return self.call({'operation': 'reconcile', 'prune': prune})

    def test_connection(self, descriptor: ConnectionDescriptor) -> Dict[str, Any]:
        return self.call({'operation': 'test_connection', 'connection': descriptor.to_dict()})

    def close(self):
        """Close connection"""
        if self.connection and not self.connection.is_closed:
            self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
