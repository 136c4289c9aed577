from tokensale.wallet.base_wallet import AccountWallet, Wallet
from tokensale.wallet.exceptions import InvalidAddress, WalletException

__all__ = ['AccountWallet', 'InvalidAddress', 'Wallet', 'WalletException']
