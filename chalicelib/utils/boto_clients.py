import os

import boto3
from botocore.config import Config

from chalicelib.constants.constants import DEFAULT_REGION


def aws_config_ddb() -> Config:
    # no client-side retries: a failed write is reported to the caller as is
    return Config(retries={'max_attempts': 1, 'mode': 'standard'},
                  region_name=os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', DEFAULT_REGION)))


def dynamodb_resource():
    # DynamoDB local (or any compatible endpoint) is used when ENDPOINT_URL is set
    if os.environ.get('ENDPOINT_URL'):
        return boto3.resource('dynamodb', endpoint_url=os.environ.get('ENDPOINT_URL'), config=aws_config_ddb())
    return boto3.resource('dynamodb', config=aws_config_ddb())
