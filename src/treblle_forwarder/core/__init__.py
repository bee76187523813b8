"""
Core business logic components.

This package contains the processing pipeline components:
- Header codec and timestamp helpers
- Payload normalizer
- Keyword masking engine
- Endpoint selection and reliable publisher
- Batch pipeline
- Metrics collection
"""
