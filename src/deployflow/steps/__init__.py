"""
Tasks concretas do pipeline de entrega, agrupadas por área:

    - housekeeping: log-setup e limpezas
    - build: Maven, Helm lint, login no registry, imagens Docker
    - scan: scans de segurança
    - deploy: dry-run, gates de cluster/confirmação, deploy GitOps
    - reconcile: Applications do Argo CD
"""
