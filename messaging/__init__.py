"""messaging/ -- Attachment storage, recipient resolution and mail dispatch.

Layer rule: messaging/ may import from core/ and auth/ (models and store),
never from api/.
"""
