"""
Configuration Management

Handles loading configuration from environment variables and config files.
The wire protocol itself needs none of this; defaults match the fixed
ports and timings every peer expects.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import json

from dotenv import find_dotenv, load_dotenv

from .wire import (
    BROADCAST_ADDRESS, BROADCAST_PORT, CHUNK_SIZE, DISCOVERY_PORT,
    DISCOVERY_TIMEOUT, PROGRESS_INTERVAL, TRANSFER_PORT,
)


@dataclass
class Config:
    """
    lanxfer configuration.
    
    Configuration priority (highest to lowest):
    1. Command-line options
    2. Environment variables (LANXFER_*)
    3. Config file (config.json)
    4. Default values
    """
    # Network
    host: str = '0.0.0.0'
    discovery_port: int = DISCOVERY_PORT
    broadcast_port: int = BROADCAST_PORT
    transfer_port: int = TRANSFER_PORT
    broadcast_address: str = BROADCAST_ADDRESS
    
    # Transfer
    chunk_size: int = CHUNK_SIZE
    output_dir: Path = field(default_factory=lambda: Path('.'))
    
    # Timing (seconds)
    discovery_timeout: float = DISCOVERY_TIMEOUT
    progress_interval: float = PROGRESS_INTERVAL
    
    # Logging
    log_level: str = 'INFO'
    
    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv(find_dotenv(usecwd=True))
        
        config = cls()
        
        # Network
        config.host = os.getenv('LANXFER_HOST', config.host)
        config.discovery_port = int(os.getenv('LANXFER_DISCOVERY_PORT', config.discovery_port))
        config.broadcast_port = int(os.getenv('LANXFER_BROADCAST_PORT', config.broadcast_port))
        config.transfer_port = int(os.getenv('LANXFER_TRANSFER_PORT', config.transfer_port))
        config.broadcast_address = os.getenv('LANXFER_BROADCAST_ADDRESS', config.broadcast_address)
        
        # Transfer
        config.chunk_size = int(os.getenv('LANXFER_CHUNK_SIZE', config.chunk_size))
        output_dir = os.getenv('LANXFER_OUTPUT_DIR')
        if output_dir:
            config.output_dir = Path(output_dir)
        
        # Timing
        config.discovery_timeout = float(
            os.getenv('LANXFER_DISCOVERY_TIMEOUT', config.discovery_timeout)
        )
        config.progress_interval = float(
            os.getenv('LANXFER_PROGRESS_INTERVAL', config.progress_interval)
        )
        
        # Logging
        config.log_level = os.getenv('LANXFER_LOG_LEVEL', config.log_level)
        
        return config
    
    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()
        
        with open(path) as f:
            data = json.load(f)
        
        config = cls()
        
        # Network
        config.host = data.get('host', config.host)
        config.discovery_port = data.get('discovery_port', config.discovery_port)
        config.broadcast_port = data.get('broadcast_port', config.broadcast_port)
        config.transfer_port = data.get('transfer_port', config.transfer_port)
        config.broadcast_address = data.get('broadcast_address', config.broadcast_address)
        
        # Transfer
        config.chunk_size = data.get('chunk_size', config.chunk_size)
        if 'output_dir' in data:
            config.output_dir = Path(data['output_dir'])
        
        # Timing
        config.discovery_timeout = data.get('discovery_timeout', config.discovery_timeout)
        config.progress_interval = data.get('progress_interval', config.progress_interval)
        
        # Logging
        config.log_level = data.get('log_level', config.log_level)
        
        return config
    
    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'discovery_port': self.discovery_port,
            'broadcast_port': self.broadcast_port,
            'transfer_port': self.transfer_port,
            'broadcast_address': self.broadcast_address,
            'chunk_size': self.chunk_size,
            'output_dir': str(self.output_dir),
            'discovery_timeout': self.discovery_timeout,
            'progress_interval': self.progress_interval,
            'log_level': self.log_level,
        }
    
    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.
    
    Environment variables override file settings.
    """
    # Start with defaults
    config = Config()
    
    # Load from file if provided
    if config_path and config_path.exists():
        config = Config.from_file(config_path)
    
    # Override with environment variables
    env_config = Config.from_env()
    
    # Merge (env takes precedence for non-default values)
    defaults = Config()
    for key in config.to_dict():
        env_val = getattr(env_config, key)
        if env_val != getattr(defaults, key):
            setattr(config, key, env_val)
    
    return config
