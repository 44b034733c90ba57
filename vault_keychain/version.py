"""Vault Keychain Meta information.
   Vault Keychain builds, verifies and re-shares the key hierarchy
   protecting end-to-end encrypted vaults and their items.
"""
__title__ = 'vault_keychain'
__description__ = (
   'Vault Keychain builds the signed key hierarchy of encrypted vaults '
   'and re-wraps vault keys for sharing.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
