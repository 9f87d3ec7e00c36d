"""AWS Lambda entry point: SQS records carrying envelopes → dispatch service."""
