"""netmount server: control surface over RabbitMQ"""

import argparse
import signal

from netmount.config import NetMountConfig
from netmount.messaging.rabbitmq import RabbitMQServer, safe_url
from netmount.services.control import ControlService
from netmount.utils.logger import get_logger, setup_logging

LOG = get_logger(__name__)


class NetMountServer:
    """Long-running server; unmounts everything it mounted on shutdown"""

    def __init__(self, config: NetMountConfig, control: ControlService = None):
        self.config = config
        self.shutdown_requested = False
        self.control = control or ControlService.from_config(config)
        self.mq_server = RabbitMQServer(config, self.control.handle)

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        LOG.info(f"Received signal {signum}, initiating shutdown...")
        self.shutdown_requested = True
        self.mq_server.stop()

    def start(self):
        """Start the server; returns after shutdown"""
        LOG.info("=" * 80)
        LOG.info("Starting netmount server")
        LOG.info("=" * 80)
        LOG.info(f"Queue:         {self.config.rabbitmq_queue}")
        LOG.info(f"RabbitMQ:      {safe_url(self.config.rabbitmq_url)}")
        LOG.info(f"Registry:      {self.config.registry_file}")
        LOG.info("=" * 80)

        LOG.info("Running startup reconciliation...")
        self.control.reconcile(prune=True)

        try:
            LOG.info("Starting message consumer...")
            self.mq_server.start_consuming()
        finally:
            self.control.shutdown()
            LOG.info("netmount server stopped")


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='netmount remote storage mount service')
    parser.add_argument('--config', help='Configuration file')
    parser.add_argument('--rabbitmq-url', help='RabbitMQ URL')
    parser.add_argument('--queue', help='Request queue name')
    parser.add_argument('--log-level', help='Log level')

    args = parser.parse_args()

    config = NetMountConfig.from_file(args.config)
    if args.rabbitmq_url:
        config.rabbitmq_url = args.rabbitmq_url
    if args.queue:
        config.rabbitmq_queue = args.queue
    if args.log_level:
        config.log_level = args.log_level
    config.validate()

    setup_logging(config)
    server = NetMountServer(config)
    server.start()


if __name__ == '__main__':
    main()
