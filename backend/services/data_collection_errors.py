"""
Exceptions du moteur de coleta de dados.

Le moteur ne lève JAMAIS pour un document mal formé (chemin absent,
mauvais type): il dégrade. Ces exceptions couvrent les erreurs de
persistance, d'état de session et de saisie invalide.
"""


class DataCollectionError(Exception):
    """Base des erreurs coleta de dados"""
    pass


class DataCollectionStoreError(DataCollectionError):
    """Raised when the persistence backend fails (lecture ou écriture)"""
    pass


class DataCollectionLoadError(DataCollectionError):
    """Schéma ou document impossible à charger: la session reste non initialisée"""
    pass


class DataCollectionSaveError(DataCollectionError):
    """Échec d'écriture: le document reste modifiable et dirty"""
    pass


class SessionStateError(DataCollectionError):
    """Opération interdite dans l'état courant de la session"""
    pass


class InvalidFieldValueError(DataCollectionError):
    """Saisie refusée par le type du champ (ex: option hors liste)"""
    pass


class UnknownFieldError(DataCollectionError):
    """Clé de champ absente du schéma"""
    pass


class SchemaNotFoundError(DataCollectionError):
    """Aucun schéma actif configuré"""
    pass


class SchemaItemNotFoundError(DataCollectionError):
    """Section ou champ introuvable (builder)"""
    pass
