# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Run the gateway: python -m kgateway.server"""

import uvicorn

from kgateway.core.config import get_config
from kgateway.core.logger import setup_logging
from kgateway.server.app import create_app


def main(host=None, port=None):
    config = get_config()
    setup_logging(config)
    app = create_app(config)

    uvicorn.run(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=config.observability.log_level.lower(),
    )


if __name__ == "__main__":
    main()
