#!/usr/bin/python3
"""
Deploys one group of Kanna contracts, in dependency order, and verifies them.

    ape run deploy --network ethereum:sepolia:node --group yield \
        --params-filepath kanna_deployment/constructor_params/sepolia.yml --account KNN_DEPLOYER
"""
from kanna_deployment.cli import deploy as cli

if __name__ == "__main__":
    cli()
