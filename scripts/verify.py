#!/usr/bin/python3
"""
Verifies the recorded but not yet verified contracts of a deployed group.

    ape run verify --network polygon:mainnet:node --group roles \
        --params-filepath kanna_deployment/constructor_params/polygon.yml
"""
from kanna_deployment.cli import verify as cli

if __name__ == "__main__":
    cli()
